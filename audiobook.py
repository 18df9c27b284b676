from __future__ import annotations

STATUS_TO_LISTEN = "to_listen"
STATUS_LISTENING = "listening"
STATUS_COMPLETED = "completed"
STATUSES = (STATUS_TO_LISTEN, STATUS_LISTENING, STATUS_COMPLETED)
DEFAULT_STATUS = STATUS_COMPLETED

FIELDS = (
    "id", "title", "author", "narrator", "duration", "genre", "description",
    "cover_url", "goodreads_url", "rating", "date_added",
    "date_started_listening", "date_end_listened", "notes", "status",
)


class Audiobook:
    """Represents a single audiobook record in the library."""

    def __init__(self, title: str, author: str | None = None, narrator: str | None = None,
                 duration: str | None = None, genre: str | None = None, description: str | None = None,
                 cover_url: str | None = None, goodreads_url: str | None = None,
                 rating: float | None = None, date_started_listening: str | None = None,
                 date_end_listened: str | None = None, notes: str | None = None,
                 status: str | None = None, id: int | None = None, date_added: str | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.narrator = narrator
        self.duration = duration
        self.genre = genre
        self.description = description
        self.cover_url = cover_url
        self.goodreads_url = goodreads_url
        self.rating = rating
        self.date_added = date_added
        self.date_started_listening = date_started_listening
        self.date_end_listened = date_end_listened
        self.notes = notes
        self.status = status

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        by = f" by {self.author}" if self.author else ""
        return f"{self.title}{by} [{self.status}]"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Audiobook(id={self.id!r}, title={self.title!r})"

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in FIELDS}

    @staticmethod
    def from_dict(data: dict) -> "Audiobook":
        return Audiobook(**{name: data.get(name) for name in FIELDS if name != "title"}, title=data["title"])

import logging
import threading
from typing import List, Optional, Dict

from audiobook import Audiobook, DEFAULT_STATUS, STATUSES, STATUS_COMPLETED
from book_info_service import BookInfoService
from config import settings
from database import initialize_database, INSERT_COLUMNS, UPDATABLE_COLUMNS

logger = logging.getLogger(__name__)


class AudiobookNotFound(LookupError):
    pass


class AudiobookLibrary:
    """Manages the audiobook collection and its SQLite persistence.

    One instance is built at process start and shared by every request. It
    holds a single connection, so all statements go through ``self._lock``.
    """

    def __init__(self, db_file: Optional[str] = None, book_info: Optional[BookInfoService] = None,
                 enrich: Optional[bool] = None) -> None:
        self.db_file = db_file or settings.database_path
        self._conn = initialize_database(self.db_file)
        self._lock = threading.Lock()

        enrich = settings.enable_enrichment if enrich is None else enrich
        if book_info is not None:
            self.book_info: Optional[BookInfoService] = book_info
        elif enrich:
            self.book_info = BookInfoService()
        else:
            self.book_info = None

    # ------------------------- Core operations ------------------------- #
    def add_audiobook(self, audiobook: Audiobook) -> Audiobook:
        """Enrich, insert and return the stored audiobook.

        User-supplied author and description win over looked-up values;
        cover_url only ever comes from the lookup.
        """
        if not audiobook.title:
            raise ValueError("Title is required")

        info = self.book_info.lookup(audiobook.title, audiobook.author) if self.book_info else None

        audiobook.author = audiobook.author or (info.author if info else None)
        audiobook.description = audiobook.description or (info.description if info else None)
        audiobook.cover_url = info.cover_url if info else None
        audiobook.status = audiobook.status or DEFAULT_STATUS

        new_id = self.insert_audiobook(audiobook)
        logger.info("Added audiobook %s: %s", new_id, audiobook.title)
        return self.get_audiobook(new_id)

    def insert_audiobook(self, audiobook: Audiobook) -> int:
        placeholders = ", ".join("?" for _ in INSERT_COLUMNS)
        values = tuple(getattr(audiobook, col) for col in INSERT_COLUMNS)
        with self._lock, self._conn:
            cursor = self._conn.execute(
                f"INSERT INTO audiobooks ({', '.join(INSERT_COLUMNS)}) VALUES ({placeholders})",
                values,
            )
            return cursor.lastrowid

    def update_audiobook(self, audiobook_id: int, audiobook: Audiobook) -> int:
        """Replace every updatable column. Returns the number of rows changed."""
        assignments = ", ".join(f"{col} = ?" for col in UPDATABLE_COLUMNS)
        values = tuple(getattr(audiobook, col) for col in UPDATABLE_COLUMNS)
        with self._lock, self._conn:
            cursor = self._conn.execute(
                f"UPDATE audiobooks SET {assignments} WHERE id = ?",
                values + (audiobook_id,),
            )
            changed = cursor.rowcount
        if changed:
            logger.info("Updated audiobook %s", audiobook_id)
        return changed

    def delete_audiobook(self, audiobook_id: int) -> int:
        with self._lock, self._conn:
            cursor = self._conn.execute("DELETE FROM audiobooks WHERE id = ?", (audiobook_id,))
            changed = cursor.rowcount
        if changed:
            logger.info("Deleted audiobook %s", audiobook_id)
        return changed

    def remove_audiobook(self, audiobook_id: int) -> None:
        """Delete by id, raising AudiobookNotFound when nothing was removed."""
        if not self.delete_audiobook(audiobook_id):
            raise AudiobookNotFound(f"Audiobook {audiobook_id} not found")

    def get_audiobook(self, audiobook_id: int) -> Optional[Audiobook]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM audiobooks WHERE id = ?", (audiobook_id,)).fetchone()
        return Audiobook.from_dict(dict(row)) if row else None

    def list_audiobooks(self) -> List[Audiobook]:
        """All audiobooks, most recently added first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM audiobooks ORDER BY date_added DESC, id DESC"
            ).fetchall()
        return [Audiobook.from_dict(dict(row)) for row in rows]

    def list_completed(self) -> List[Audiobook]:
        """Completed audiobooks in the order they were started."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM audiobooks WHERE status = ? ORDER BY date_started_listening, id",
                (STATUS_COMPLETED,),
            ).fetchall()
        return [Audiobook.from_dict(dict(row)) for row in rows]

    def list_listened(self) -> List[Dict]:
        """Completed audiobooks as dicts numbered 1..N."""
        return [
            {"number": idx, **book.to_dict()}
            for idx, book in enumerate(self.list_completed(), start=1)
        ]

    def get_statistics(self) -> Dict[str, int]:
        stats = {"total": 0}
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM audiobooks")
            stats["total"] = cursor.fetchone()[0]
            for status in STATUSES:
                cursor.execute("SELECT COUNT(*) FROM audiobooks WHERE status = ?", (status,))
                stats[status] = cursor.fetchone()[0]
        return stats

    def ping(self) -> bool:
        with self._lock:
            self._conn.execute("SELECT 1")
        return True

    def close(self) -> None:
        """Close the database handle and the lookup client."""
        try:
            if self.book_info is not None:
                self.book_info.close()
        finally:
            with self._lock:
                self._conn.close()
        logger.info("Database connection closed")

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import httpx

from config import settings

logger = logging.getLogger(__name__)

COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-L.jpg"


@dataclass
class BookInfo:
    """Best-effort metadata for one book from the Open Library search API"""
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    cover_url: Optional[str] = None
    isbn: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "cover_url": self.cover_url,
            "isbn": self.isbn,
        }


class BookInfoService:
    """Looks up cover, description and author for a title on Open Library.

    A lookup never raises: network errors, bad status codes and unexpected
    payloads all come back as ``None`` so record creation can carry on with
    whatever the user typed.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 client: Optional[httpx.Client] = None):
        self.base_url = (base_url or settings.openlibrary_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.openlibrary_timeout
        self._client = client or httpx.Client(timeout=self.timeout, follow_redirects=True)

    @staticmethod
    def build_query(title: str, author: Optional[str] = None) -> str:
        return f"{title} {author or ''}".strip()

    def lookup(self, title: str, author: Optional[str] = None) -> Optional[BookInfo]:
        """Return metadata from the first search hit, or None."""
        query = self.build_query(title, author)
        try:
            resp = self._client.get(
                f"{self.base_url}/search.json",
                params={"q": query, "limit": 5},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            docs = resp.json().get("docs") or []
            if not docs:
                logger.info("No Open Library match for %r", query)
                return None
            info = self.parse_doc(docs[0], author)
        except httpx.HTTPError as e:
            logger.warning("Error fetching book info for %r: %s", query, e)
            return None
        except (ValueError, TypeError, AttributeError, KeyError, IndexError) as e:
            logger.warning("Unexpected Open Library response for %r: %s", query, e)
            return None

        logger.info("Open Library match for %r: cover=%s", query, bool(info.cover_url))
        return info

    @staticmethod
    def parse_doc(doc: Dict[str, Any], fallback_author: Optional[str] = None) -> BookInfo:
        authors = doc.get("author_name") or []
        sentences = doc.get("first_sentence") or []
        isbns = doc.get("isbn") or []
        cover_id = doc.get("cover_i")

        # Any of these may arrive as a bare string instead of a list
        if isinstance(authors, str):
            authors = [authors]
        if isinstance(isbns, str):
            isbns = [isbns]
        if isinstance(sentences, str):
            sentences = [sentences]
        description = sentences[0] if sentences else None
        # Some records carry the sentence as {"type": ..., "value": ...}
        if isinstance(description, dict):
            description = description.get("value")

        return BookInfo(
            title=doc.get("title"),
            author=authors[0] if authors else fallback_author,
            description=description,
            cover_url=COVER_URL_TEMPLATE.format(cover_id=cover_id) if cover_id else None,
            isbn=isbns[0] if isbns else None,
        )

    def close(self) -> None:
        self._client.close()

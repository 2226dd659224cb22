"""Data models for the reader engine."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Chapter:
    """A single chapter as extracted by a content source."""
    index: int
    title: str
    content: str


@dataclass
class BookMetadata:
    """Metadata extracted from the book file."""
    title: str
    author: str
    language: str
    cover_image: Optional[bytes] = None


@dataclass
class BookContent:
    """Everything a content source hands back for one book."""
    metadata: BookMetadata
    chapters: list[Chapter] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.metadata.title


@dataclass(frozen=True)
class BookPage:
    """One screen of chapter text."""
    content: str
    chapter_index: int
    chapter_title: str


@dataclass
class ReadingProgress:
    """Persisted reading cursor for a book.

    ``page_index`` points into the page list computed with the settings that were
    active when the record was saved, so it must be clamped after repagination.
    """
    book_id: str
    chapter_index: int
    page_index: int
    last_read_date: datetime

    def to_dict(self) -> dict:
        return {
            "book_id": self.book_id,
            "chapter_index": self.chapter_index,
            "page_index": self.page_index,
            "last_read_date": self.last_read_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReadingProgress":
        """Build a record from its stored form.

        Raises:
            KeyError, TypeError, ValueError: If the stored record is malformed.
        """
        return cls(
            book_id=str(data["book_id"]),
            chapter_index=int(data["chapter_index"]),
            page_index=int(data["page_index"]),
            last_read_date=datetime.fromisoformat(data["last_read_date"]),
        )

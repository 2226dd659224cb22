"""Abstract base class for book content sources."""

from abc import ABC, abstractmethod
from typing import Optional

from smartbook_reader.models import BookContent


class ContentSource(ABC):
    """Abstract base class that all book content sources must implement."""

    @abstractmethod
    def load_chapters(self, file_path: str) -> Optional[BookContent]:
        """Load the book's metadata and ordered chapters.

        Returns:
            The book content, or None when the file cannot be read or parsed.
            Sources log the underlying failure instead of raising it.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source name."""
        ...

    @property
    @abstractmethod
    def extensions(self) -> tuple[str, ...]:
        """Lower-case file extensions handled, including the dot."""
        ...

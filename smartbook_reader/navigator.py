"""Reader navigator - page/chapter cursor over a paginated book."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Optional

from smartbook_reader.models import BookContent, BookMetadata, BookPage, Chapter, ReadingProgress
from smartbook_reader.paginator import paginate
from smartbook_reader.settings import PAGINATION_FIELDS, ReaderSettings
from smartbook_reader.sources.base import ContentSource
from smartbook_reader.storage import ProgressStore, SettingsManager

logger = logging.getLogger(__name__)


class ReaderState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


class ContentUnavailableError(RuntimeError):
    """The content source returned no book or a book without chapters."""


class ReaderNavigator:
    """Tracks the reading position in one open book.

    State machine: loading → ready | error, then → closed.

    Pages form a single list for the whole book, so turning past the last page
    of a chapter lands on the first page of the next one. Every change of the
    current page is written to the progress store before the call returns.
    """

    def __init__(
        self,
        book_id: str,
        file_path: str,
        source: ContentSource,
        progress_store: ProgressStore,
        settings_manager: SettingsManager,
    ):
        self.book_id = book_id
        self.file_path = file_path
        self.source = source
        self.progress_store = progress_store
        self.settings_manager = settings_manager

        self.state = ReaderState.LOADING
        self.error: Optional[ContentUnavailableError] = None
        self._content: Optional[BookContent] = None
        self._pages: list[BookPage] = []
        self._current_page_index = 0

    # --- Loading ---

    def open(self) -> ReaderState:
        """Load the book synchronously and enter the ready or error state."""
        if self.state != ReaderState.LOADING:
            return self.state
        logger.info("Apertura libro '%s': %s", self.book_id, self.file_path)
        self._apply_content(self.source.load_chapters(self.file_path))
        return self.state

    async def open_async(self) -> ReaderState:
        """Load the book on a worker thread and apply the result on the loop thread.

        If the reader is closed while the load is in flight the result is dropped.
        """
        if self.state != ReaderState.LOADING:
            return self.state
        logger.info("Apertura libro '%s' in background: %s", self.book_id, self.file_path)
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(None, self.source.load_chapters, self.file_path)

        if self.state != ReaderState.LOADING:
            logger.debug("Caricamento di '%s' completato dopo la chiusura, scartato", self.book_id)
            return self.state
        self._apply_content(content)
        return self.state

    def _apply_content(self, content: Optional[BookContent]) -> None:
        if content is None or not content.chapters:
            self.error = ContentUnavailableError(
                f"Contenuto non disponibile per '{self.book_id}'"
            )
            self.state = ReaderState.ERROR
            logger.warning("%s", self.error)
            return

        self._content = content
        self._pages = paginate(content.chapters, self.settings)
        self._current_page_index = 0

        progress = self.progress_store.load(self.book_id)
        if progress is not None:
            self._current_page_index = self._clamp(progress.page_index)
            logger.debug(
                "Progresso ripristinato per '%s': pagina %d", self.book_id, self._current_page_index,
            )

        self.state = ReaderState.READY
        logger.info(
            "Libro '%s' pronto: %d capitoli, %d pagine",
            content.title, len(content.chapters), len(self._pages),
        )

    # --- Derived views ---

    @property
    def settings(self) -> ReaderSettings:
        return self.settings_manager.settings

    @property
    def is_ready(self) -> bool:
        return self.state == ReaderState.READY

    @property
    def metadata(self) -> Optional[BookMetadata]:
        return self._content.metadata if self._content else None

    @property
    def chapters(self) -> list[Chapter]:
        return list(self._content.chapters) if self._content else []

    @property
    def pages(self) -> list[BookPage]:
        return list(self._pages)

    @property
    def total_pages(self) -> int:
        return len(self._pages)

    @property
    def chapter_count(self) -> int:
        return len(self._content.chapters) if self._content else 0

    @property
    def current_page_index(self) -> int:
        return self._current_page_index

    @property
    def current_page(self) -> Optional[BookPage]:
        if 0 <= self._current_page_index < len(self._pages):
            return self._pages[self._current_page_index]
        return None

    @property
    def current_chapter_index(self) -> int:
        page = self.current_page
        return page.chapter_index if page else 0

    @property
    def current_chapter_title(self) -> str:
        page = self.current_page
        return page.chapter_title if page else ""

    @property
    def can_go_previous_chapter(self) -> bool:
        return self.is_ready and self.current_chapter_index > 0

    @property
    def can_go_next_chapter(self) -> bool:
        return self.is_ready and self.current_chapter_index < self.chapter_count - 1

    @property
    def progress_fraction(self) -> float:
        """Share of the book read, counting the current page."""
        if not self._pages:
            return 0.0
        return (self._current_page_index + 1) / len(self._pages)

    # --- Navigation ---

    def next_page(self) -> bool:
        if not self.is_ready or self._current_page_index >= len(self._pages) - 1:
            return False
        return self._move_to(self._current_page_index + 1)

    def previous_page(self) -> bool:
        if not self.is_ready or self._current_page_index <= 0:
            return False
        return self._move_to(self._current_page_index - 1)

    def go_to_page(self, index: int) -> bool:
        if not self.is_ready or not 0 <= index < len(self._pages):
            return False
        return self._move_to(index)

    def next_chapter(self) -> bool:
        return self.go_to_chapter(self.current_chapter_index + 1)

    def previous_chapter(self) -> bool:
        return self.go_to_chapter(self.current_chapter_index - 1)

    def go_to_chapter(self, index: int) -> bool:
        """Jump to the first page of a chapter; out-of-range indices are ignored."""
        if not self.is_ready or not 0 <= index < self.chapter_count:
            return False
        page_index = self._first_page_of_chapter(index)
        if page_index is None:
            return False
        return self._move_to(page_index)

    def _first_page_of_chapter(self, chapter_index: int) -> Optional[int]:
        for i, page in enumerate(self._pages):
            if page.chapter_index == chapter_index:
                return i
        return None

    def _move_to(self, index: int) -> bool:
        if index == self._current_page_index:
            return False
        self._current_page_index = index
        self.save_progress()
        return True

    def _clamp(self, index: int) -> int:
        return max(0, min(index, len(self._pages) - 1))

    # --- Settings ---

    def on_settings_changed(self, new_settings: ReaderSettings) -> frozenset[str]:
        """Adopt new settings, paginating again when the page size changed.

        The previous page index is carried over and clamped into the new page
        list; the reading position by content offset is not preserved.
        """
        changed = self.settings_manager.apply(new_settings)
        if not changed or not self.is_ready or not changed & PAGINATION_FIELDS:
            return changed

        previous_index = self._current_page_index
        self._pages = paginate(self._content.chapters, new_settings)
        self._current_page_index = self._clamp(previous_index)
        logger.info(
            "Reimpaginato '%s' con corpo %s: %d pagine",
            self.book_id, new_settings.font_size, len(self._pages),
        )
        if self._current_page_index != previous_index:
            self.save_progress()
        return changed

    def update_settings(self, **changes) -> frozenset[str]:
        """Apply a partial settings change, e.g. ``update_settings(font_size=22)``."""
        return self.on_settings_changed(replace(self.settings, **changes))

    # --- Persistence & teardown ---

    def save_progress(self) -> None:
        if not self.is_ready:
            return
        self.progress_store.save(ReadingProgress(
            book_id=self.book_id,
            chapter_index=self.current_chapter_index,
            page_index=self._current_page_index,
            last_read_date=datetime.now(),
        ))

    def close(self) -> None:
        """Save progress and pending settings, then stop accepting navigation."""
        if self.state == ReaderState.CLOSED:
            return
        self.save_progress()
        if self.settings_manager.has_pending_changes:
            self.settings_manager.flush()
        self.state = ReaderState.CLOSED
        logger.debug("Lettore chiuso per '%s'", self.book_id)

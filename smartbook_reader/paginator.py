"""Paginator - splits chapter text into screen-sized pages."""

import logging

from smartbook_reader.models import BookPage, Chapter
from smartbook_reader.settings import ReaderSettings

logger = logging.getLogger(__name__)

# Characters that fit on one page at the reference font size
PAGE_CHAR_BUDGET = 3000
REFERENCE_FONT_SIZE = 18

SENTENCE_TERMINALS = "。！？.!?"


def chars_per_page(font_size: float) -> int:
    """Character budget of one page: floor(3000 / font_size * 18).

    A crude heuristic, not a text measurement: larger fonts get fewer characters.
    """
    return max(1, int((PAGE_CHAR_BUDGET * REFERENCE_FONT_SIZE) // font_size))


def _snap_end(text: str, start: int, end: int) -> int:
    """Move a mid-text cut back to a paragraph or sentence boundary."""
    newline = text.rfind("\n", start, end)
    if newline != -1:
        return newline + 1

    terminal = max(text.rfind(mark, start, end) for mark in SENTENCE_TERMINALS)
    if terminal != -1:
        return terminal + 1

    return end


def paginate_text(text: str, font_size: float) -> list[str]:
    """Split one chapter's text into trimmed, non-empty pages.

    Always returns at least one page; an empty chapter yields ``[""]``.
    """
    budget = chars_per_page(font_size)
    pages = []
    start = 0

    while start < len(text):
        end = min(start + budget, len(text))
        if end < len(text):
            end = _snap_end(text, start, end)

        page = text[start:end].strip()
        if page:
            pages.append(page)
        start = end

    return pages if pages else [""]


def paginate(chapters: list[Chapter], settings: ReaderSettings) -> list[BookPage]:
    """Paginate a whole book, tagging every page with its chapter.

    Pure function: the same chapters and settings always give the same pages.
    """
    pages = []
    for chapter_index, chapter in enumerate(chapters):
        for content in paginate_text(chapter.content, settings.font_size):
            pages.append(BookPage(
                content=content,
                chapter_index=chapter_index,
                chapter_title=chapter.title,
            ))

    logger.debug(
        "Impaginati %d capitoli in %d pagine (corpo %s, %d caratteri/pagina)",
        len(chapters), len(pages), settings.font_size, chars_per_page(settings.font_size),
    )
    return pages

"""Plain-text content source - detects chapter headings in TXT books."""

import logging
import re
from pathlib import Path
from typing import Optional

from smartbook_reader.models import BookContent, BookMetadata, Chapter
from smartbook_reader.sources import register_source
from smartbook_reader.sources.base import ContentSource

logger = logging.getLogger(__name__)

ENCODINGS = ("utf-8", "utf-16", "latin-1")

CHAPTER_HEADING = re.compile(
    r"^(?:"
    r"第[零一二三四五六七八九十百千万\d]+[章节回]"
    r"|Chapter\s+\d+"
    r"|CHAPTER\s+\d+"
    r"|卷[零一二三四五六七八九十\d]+"
    r"|第[零一二三四五六七八九十百千万\d]+部分"
    r")"
)

AUTHOR_PREFIXES = ("作者：", "作者:")

WHOLE_TEXT_TITLE = "Testo completo"


def read_text(path: Path) -> Optional[str]:
    """Decode a text file trying the common encodings in order."""
    data = path.read_bytes()
    # utf-16 without a BOM would decode almost anything, so require one
    for encoding in ENCODINGS:
        if encoding == "utf-16" and not data.startswith((b"\xff\xfe", b"\xfe\xff")):
            continue
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            logger.debug("Decodifica %s fallita per %s", encoding, path.name)
    return None


def split_chapters(text: str) -> list[Chapter]:
    """Split a whole book into chapters at recognised heading lines.

    Text before the first heading is dropped, as is a heading with no lines
    after it. Without any heading the whole text becomes one chapter.
    """
    chapters = []
    title = None
    lines: list[str] = []

    def close_chapter():
        if title is not None and lines:
            chapters.append(Chapter(index=len(chapters), title=title, content="\n".join(lines)))

    for line in text.splitlines():
        stripped = line.strip()
        if stripped and CHAPTER_HEADING.match(stripped):
            close_chapter()
            title = stripped
            lines = []
        else:
            lines.append(line)
    close_chapter()

    if not chapters:
        chapters.append(Chapter(index=0, title=WHOLE_TEXT_TITLE, content=text))
    return chapters


def guess_metadata(text: str, path: Path) -> BookMetadata:
    """Infer title and author from the first lines of the book."""
    title = None
    author = None

    for index, line in enumerate(text.splitlines()[:10]):
        stripped = line.strip()
        if not stripped:
            continue
        if title is None and index < 3:
            title = stripped
        if author is None:
            for prefix in AUTHOR_PREFIXES:
                if prefix in stripped:
                    author = stripped.replace(prefix, "").strip()
                    break
            else:
                if stripped.startswith(("by ", "By ")):
                    author = stripped[3:].strip()

    return BookMetadata(
        title=title or path.stem,
        author=author or "Sconosciuto",
        language="",
    )


@register_source("txt")
class TxtSource(ContentSource):
    """Content source for plain-text books."""

    def load_chapters(self, file_path: str) -> Optional[BookContent]:
        path = Path(file_path)
        try:
            text = read_text(path)
        except OSError as e:
            logger.error("Impossibile leggere '%s': %s", file_path, e)
            return None
        if text is None:
            logger.error("Codifica non riconosciuta per '%s'", file_path)
            return None

        chapters = split_chapters(text)
        logger.info("Estratti %d capitoli da '%s'", len(chapters), file_path)
        return BookContent(metadata=guess_metadata(text, path), chapters=chapters)

    @property
    def name(self) -> str:
        return "Testo"

    @property
    def extensions(self) -> tuple[str, ...]:
        return (".txt",)

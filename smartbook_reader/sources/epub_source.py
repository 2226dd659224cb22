"""EPUB content source - extracts chapters and metadata with ebooklib."""

import logging
import posixpath
import re
from typing import Optional

import ebooklib
from ebooklib import epub
from bs4 import BeautifulSoup

from smartbook_reader.models import BookContent, BookMetadata, Chapter
from smartbook_reader.sources import register_source
from smartbook_reader.sources.base import ContentSource

logger = logging.getLogger(__name__)

LEAF_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote", "pre"]


class EpubParser:
    """Parse an EPUB file into structured chapters and metadata."""

    def __init__(self, epub_path: str):
        self.epub_path = epub_path
        self._book: epub.EpubBook | None = None

    def parse(self) -> tuple[BookMetadata, list[Chapter]]:
        """Parse the EPUB and return metadata + ordered chapters."""
        self._book = epub.read_epub(self.epub_path)
        metadata = self._extract_metadata()
        chapters = self._extract_chapters()
        return metadata, chapters

    def _extract_metadata(self) -> BookMetadata:
        """Extract book metadata from EPUB Dublin Core fields."""
        title = self._book.get_metadata("DC", "title")
        author = self._book.get_metadata("DC", "creator")
        language = self._book.get_metadata("DC", "language")

        return BookMetadata(
            title=title[0][0] if title else "Sconosciuto",
            author=author[0][0] if author else "Sconosciuto",
            language=language[0][0] if language else "",
            cover_image=self._extract_cover(),
        )

    def _extract_cover(self) -> bytes | None:
        """Extract cover image from EPUB, trying multiple strategies."""
        for item in self._book.get_items_of_type(ebooklib.ITEM_COVER):
            content = item.get_content()
            if content:
                logger.debug("Copertina trovata via ITEM_COVER")
                return content

        # Most EPUBs reference the cover from an OPF <meta name="cover">
        cover_meta = self._book.get_metadata("OPF", "cover")
        for meta_val, meta_attrs in cover_meta or []:
            cover_id = meta_attrs.get("content") or meta_val
            item = self._book.get_item_with_id(cover_id) if cover_id else None
            if item and item.get_content():
                logger.debug("Copertina trovata via OPF metadata: %s", cover_id)
                return item.get_content()
            break

        for item in self._book.get_items_of_type(ebooklib.ITEM_IMAGE):
            name = (item.get_name() or "").lower()
            item_id = (item.id or "").lower()
            if "cover" in name or "cover" in item_id:
                logger.debug("Copertina trovata via nome file: %s", item.get_name())
                return item.get_content()

        return None

    def _toc_titles(self) -> dict[str, str]:
        """Map document file names to their table-of-contents titles."""
        titles = {}

        def walk(entries):
            for entry in entries:
                if isinstance(entry, tuple):
                    section, children = entry
                    walk([section])
                    walk(children)
                    continue
                href = getattr(entry, "href", None)
                title = (getattr(entry, "title", None) or "").strip()
                if href and title:
                    # First entry wins: later ones usually point at anchors inside
                    titles.setdefault(posixpath.normpath(href.split("#", 1)[0]), title)

        walk(self._book.toc or [])
        return titles

    def _extract_chapters(self) -> list[Chapter]:
        """Extract chapters in spine (reading) order."""
        toc_titles = self._toc_titles()
        chapters = []

        for item_id, _ in self._book.spine:
            item = self._book.get_item_with_id(item_id)
            if item is None or isinstance(item, epub.EpubNav):
                continue

            html_content = item.get_body_content()
            if not html_content:
                continue

            text = self._html_to_text(html_content)
            if not text:
                # Cover and image-only documents carry no readable text
                logger.debug("Saltato elemento vuoto: %s", item_id)
                continue

            title = (
                toc_titles.get(posixpath.normpath(item.get_name() or ""))
                or self._extract_title(html_content)
                or f"Capitolo {len(chapters) + 1}"
            )
            chapters.append(Chapter(index=len(chapters), title=title, content=text))

        logger.info("Estratti %d capitoli da '%s'", len(chapters), self.epub_path)
        return chapters

    @staticmethod
    def _html_to_text(html_content: bytes) -> str:
        """Convert XHTML content to plain text, one block element per line."""
        soup = BeautifulSoup(html_content, "lxml")

        for tag in soup(["script", "style", "nav", "aside", "figure"]):
            tag.decompose()

        # Leaf block elements only: parents containing blocks would duplicate text
        leaves = soup.find_all(LEAF_TAGS)

        if leaves:
            parts = []
            for tag in leaves:
                if tag.find(LEAF_TAGS):
                    continue
                text = " ".join(tag.get_text().split())
                if text:
                    parts.append(text)
            text = "\n".join(parts)
        else:
            text = soup.get_text(separator="\n", strip=True)

        text = text.replace("\u00A0", " ")
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()

    @staticmethod
    def _extract_title(html_content: bytes) -> str | None:
        """Try to extract a chapter title from headings."""
        soup = BeautifulSoup(html_content, "lxml")
        for tag_name in ["h1", "h2", "h3", "title"]:
            tag = soup.find(tag_name)
            if tag:
                title = tag.get_text(strip=True)
                if title:
                    return title
        return None


@register_source("epub")
class EpubSource(ContentSource):
    """Content source for EPUB 2/3 files."""

    def load_chapters(self, file_path: str) -> Optional[BookContent]:
        try:
            metadata, chapters = EpubParser(file_path).parse()
        except Exception as e:
            logger.error("Impossibile leggere l'EPUB '%s': %s", file_path, e)
            return None
        return BookContent(metadata=metadata, chapters=chapters)

    @property
    def name(self) -> str:
        return "EPUB"

    @property
    def extensions(self) -> tuple[str, ...]:
        return (".epub",)

"""Tests for the paginator."""

import re

from smartbook_reader.models import Chapter
from smartbook_reader.paginator import chars_per_page, paginate, paginate_text
from smartbook_reader.settings import ReaderSettings


def _strip_ws(text: str) -> str:
    return re.sub(r"\s+", "", text)


def _long_text(length: int) -> str:
    sentence = "Questa frase serve solo a riempire la pagina. "
    return (sentence * (length // len(sentence) + 1))[:length]


class TestCharsPerPage:
    def test_reference_font_size(self):
        assert chars_per_page(18) == 3000

    def test_values_match_heuristic(self):
        assert chars_per_page(14) == 3857
        assert chars_per_page(24) == 2250
        assert chars_per_page(27) == 2000
        assert chars_per_page(28) == 1928

    def test_larger_font_fits_fewer_characters(self):
        sizes = range(14, 29)
        budgets = [chars_per_page(s) for s in sizes]
        assert budgets == sorted(budgets, reverse=True)


class TestPaginateText:
    def test_short_text_single_page(self):
        text = "Hello world. This is a test.\nNext paragraph here."
        pages = paginate_text(text, 18)
        assert pages == [text]

    def test_empty_text_gives_one_blank_page(self):
        assert paginate_text("", 18) == [""]

    def test_whitespace_only_text_gives_one_blank_page(self):
        assert paginate_text("  \n\n\t ", 18) == [""]

    def test_pages_are_trimmed(self):
        pages = paginate_text("   padded text   \n", 18)
        assert pages == ["padded text"]

    def test_snaps_to_last_newline_in_window(self):
        first = "a" * 2000
        second = "b" * 2000
        pages = paginate_text(f"{first}\n{second}", 18)
        assert pages == [first, second]

    def test_snaps_to_sentence_end_without_newline(self):
        first = "x" * 2500 + "。"
        second = "y" * 1000
        pages = paginate_text(first + second, 18)
        assert pages == [first, second]

    def test_newline_preferred_over_later_sentence_end(self):
        text = "a" * 1000 + "\n" + "b" * 1500 + "!" + "c" * 1000
        pages = paginate_text(text, 18)
        assert pages[0] == "a" * 1000
        assert pages[1].startswith("b")

    def test_raw_cut_without_any_boundary(self):
        text = "z" * 7000
        pages = paginate_text(text, 18)
        assert [len(p) for p in pages] == [3000, 3000, 1000]

    def test_counts_code_points(self):
        text = "字" * 3001
        pages = paginate_text(text, 18)
        assert [len(p) for p in pages] == [3000, 1]

    def test_no_page_exceeds_budget(self):
        text = _long_text(20000)
        for size in (14, 18, 22, 28):
            assert all(len(p) <= chars_per_page(size) for p in paginate_text(text, size))

    def test_coverage_keeps_every_non_whitespace_character(self):
        text = _long_text(12000) + "\n\nUltimo paragrafo!\n" + "w" * 4000
        pages = paginate_text(text, 24)
        assert _strip_ws("".join(pages)) == _strip_ws(text)


class TestPaginate:
    def _chapters(self):
        return [
            Chapter(index=0, title="Uno", content=_long_text(7000)),
            Chapter(index=1, title="Vuoto", content=""),
            Chapter(index=2, title="Tre", content="Breve capitolo."),
        ]

    def test_pages_carry_chapter_index_and_title(self):
        pages = paginate(self._chapters(), ReaderSettings(font_size=18))
        assert pages[0].chapter_index == 0
        assert pages[0].chapter_title == "Uno"
        assert pages[-1].chapter_index == 2
        assert pages[-1].content == "Breve capitolo."

    def test_empty_chapter_contributes_one_blank_page(self):
        pages = paginate(self._chapters(), ReaderSettings())
        empty = [p for p in pages if p.chapter_index == 1]
        assert len(empty) == 1
        assert empty[0].content == ""
        assert empty[0].chapter_title == "Vuoto"

    def test_every_chapter_has_a_page(self):
        chapters = self._chapters()
        pages = paginate(chapters, ReaderSettings())
        assert {p.chapter_index for p in pages} == set(range(len(chapters)))

    def test_chapter_index_is_monotonic_in_steps_of_one(self):
        pages = paginate(self._chapters(), ReaderSettings(font_size=28))
        for a, b in zip(pages, pages[1:]):
            assert 0 <= b.chapter_index - a.chapter_index <= 1

    def test_deterministic(self):
        chapters = self._chapters()
        settings = ReaderSettings(font_size=21)
        assert paginate(chapters, settings) == paginate(chapters, settings)

    def test_no_chapters_gives_no_pages(self):
        assert paginate([], ReaderSettings()) == []

    def test_bigger_font_gives_more_pages(self):
        chapters = self._chapters()
        small = paginate(chapters, ReaderSettings(font_size=14))
        large = paginate(chapters, ReaderSettings(font_size=28))
        assert len(large) > len(small)

    def test_chapter_position_not_chapter_field_is_used(self):
        chapters = [Chapter(index=7, title="Solo", content="Testo.")]
        pages = paginate(chapters, ReaderSettings())
        assert pages[0].chapter_index == 0

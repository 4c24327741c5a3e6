"""Shared test fixtures for the rsvp_reader test suite.

WHY: Most test modules start from markdown text and need the parsed
tokens, the timed stream, or a long mixed document for layout checks.
Centralizing the fixtures keeps the sample documents identical across
modules.

HOW: Fixtures return callables (markdown → ParsedDocument / timed
stream) so each test states its own input inline, plus a few canned
documents.

RULES:
- Timed streams are built at 300 WPM (the calibration baseline)
- LONG_DOCUMENT mixes every block kind so window edges land on all of them
- EPUB books are written to tmp_path with EbookLib (NCX + nav TOC), never
  checked in as binary fixtures
"""

from pathlib import Path
from typing import Callable, List, Sequence, Tuple

import pytest
from ebooklib import epub

from rsvp_reader.core.ir import ParsedDocument, TimedToken
from rsvp_reader.core.stream import build_timed_stream
from rsvp_reader.parsers.markdown import MarkdownParser


SAMPLE_MARKDOWN = """# Getting Started

This is **bold** and *italic* text with a [link](https://example.com) inside.

## Lists

- First item
- Second item with more words

> A quoted line of text.

| Name | Value |
|------|-------|
| alpha | one |
| beta | two |
"""


def _long_document() -> str:
    parts: List[str] = []
    for i in range(40):
        parts.append(f"## Section {i}")
        parts.append(
            "Reading one word at a time keeps the eyes still while the text "
            "moves, which is the whole point of a rapid serial visual "
            f"presentation reader number {i}. It works best on prose."
        )
        parts.append(f"- item one of list {i}\n- item two with a few more words\n- item three")
        parts.append(f"> quoted wisdom number {i} goes here, briefly.")
        if i % 3 == 0:
            parts.append("| key | value |\n|-----|-------|\n| a | first cell |\n| b | second |")
        if i % 5 == 0:
            parts.append("> [!note] Remember this\n> callout body text.")
    return "\n\n".join(parts)


LONG_DOCUMENT = _long_document()

_PROSE_WORDS = (
    "the reader keeps a steady pace through long stretches of ordinary prose "
    "where nothing but paragraphs separate one thought from another and "
    "every word arrives in turn"
).split()


def _prose(paragraphs: int, words_per_paragraph: int) -> str:
    """Plain paragraphs only: no headings, lists or quotes to anchor on."""
    body = []
    for p in range(paragraphs):
        words = [
            _PROSE_WORDS[(p * 7 + w * 3) % len(_PROSE_WORDS)]
            for w in range(words_per_paragraph)
        ]
        body.append(" ".join(words))
    return "\n\n".join(body)


PROSE_DOCUMENT = _prose(20, 120)
RUN_ON_DOCUMENT = _prose(1, 1600)


@pytest.fixture
def md_parser() -> MarkdownParser:
    return MarkdownParser()


@pytest.fixture
def parse_md(md_parser) -> Callable[[str], ParsedDocument]:
    """Parse markdown text into a ParsedDocument."""
    return md_parser.parse_str


@pytest.fixture
def timed_stream(md_parser) -> Callable[[str], List[TimedToken]]:
    """Parse markdown text and build its timed stream at 300 WPM."""

    def build(text: str) -> List[TimedToken]:
        return build_timed_stream(md_parser.parse_str(text).tokens, 300)

    return build


@pytest.fixture
def sample_document(md_parser) -> ParsedDocument:
    return md_parser.parse_str(SAMPLE_MARKDOWN)


@pytest.fixture
def long_document(md_parser) -> ParsedDocument:
    return md_parser.parse_str(LONG_DOCUMENT)


@pytest.fixture
def long_stream(long_document) -> List[TimedToken]:
    return build_timed_stream(long_document.tokens, 300)


@pytest.fixture
def prose_stream(md_parser) -> List[TimedToken]:
    return build_timed_stream(md_parser.parse_str(PROSE_DOCUMENT).tokens, 300)


@pytest.fixture
def run_on_stream(md_parser) -> List[TimedToken]:
    return build_timed_stream(md_parser.parse_str(RUN_ON_DOCUMENT).tokens, 300)


# (chapter title, file name, body XHTML)
ChapterEntry = Tuple[str, str, str]


def write_epub(path: Path, chapters: Sequence[ChapterEntry], title: str = "Test Book") -> Path:
    """Write an EPUB with one spine document per chapter entry."""
    book = epub.EpubBook()
    book.set_identifier("rsvp-test-book")
    book.set_title(title)
    book.set_language("en")

    items = []
    for chapter_title, file_name, body in chapters:
        item = epub.EpubHtml(title=chapter_title, file_name=file_name, lang="en")
        item.content = f"<html><body>{body}</body></html>"
        book.add_item(item)
        items.append(item)

    book.toc = [epub.Link(item.file_name, item.title, item.file_name.split(".")[0]) for item in items]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav"] + items

    epub.write_epub(str(path), book)
    return path


@pytest.fixture
def make_epub(tmp_path) -> Callable[..., Path]:
    """Write an EPUB under tmp_path: make_epub("name.epub", chapters)."""

    def build(name: str, chapters: Sequence[ChapterEntry], title: str = "Test Book") -> Path:
        return write_epub(tmp_path / name, chapters, title)

    return build

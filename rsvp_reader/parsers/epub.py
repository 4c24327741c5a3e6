"""EPUB front end: chapters → combined markdown → tokens.

WHY: Most long-form reading material ships as EPUB. Rather than teach
the tokenizer a second tree format, each chapter's XHTML is converted to
markdown and the combined book goes through MarkdownParser. The same
conversion powers chapter export, so a book can be split into plain
markdown files and read (or edited) chapter by chapter.

HOW: EbookLib reads the container; the spine gives reading order, the
flattened table of contents gives chapter titles (matched by href).
BeautifulSoup walks each chapter body and emits markdown for the
elements the reader understands.

RULES:
- Spine order, document items only; the navigation document is skipped
- A chapter containing "<parsererror" fails the whole book with
  DocumentParseError naming the chapter (fail fast, no partial book)
- Titled chapters are prefixed with "# title" so they become sections
- Chapters whose markdown is blank are skipped
- img, script and style are dropped; pre becomes a fenced block (which
  the tokenizer then skips)
- parse_str() is not supported: an EPUB is a zip container, not text
"""

from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from bs4 import (
    BeautifulSoup,
    CData,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)
from ebooklib import epub

from rsvp_reader.core.errors import DocumentIOError, DocumentParseError
from rsvp_reader.core.ir import ParsedDocument
from rsvp_reader.parsers.base import BaseParser
from rsvp_reader.parsers.markdown import MarkdownParser

logger = logging.getLogger(__name__)

_PARSER_ERROR_MARKER = "<parsererror"

_DROPPED_TAGS = frozenset({"img", "script", "style", "head", "title"})
_HEADING_TAGS = {f"h{n}": n for n in range(1, 7)}
_INLINE_MARKERS = {
    "strong": "**",
    "b": "**",
    "em": "*",
    "i": "*",
}
_BLOCK_TAGS = frozenset({
    "p", "div", "section", "article", "body", "header", "footer", "aside",
    "figure", "figcaption", "main", "nav", "html",
})

_BLANK_LINES_RE = re.compile(r"\n{3,}")
_WHITESPACE_RE = re.compile(r"\s+")

# Markup strings that never carry reading text.
_SKIPPED_STRINGS = (CData, Comment, Declaration, Doctype, ProcessingInstruction)


@dataclass
class EpubChapter:
    """One spine document converted to markdown."""

    index: int
    title: Optional[str]
    markdown: str


# ---------------------------------------------------------------------------
# XHTML → markdown
# ---------------------------------------------------------------------------


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _inline(node) -> str:
    """Render the inline content of a node as one markdown line."""
    if isinstance(node, _SKIPPED_STRINGS):
        return ""
    if isinstance(node, NavigableString):
        return _WHITESPACE_RE.sub(" ", str(node))
    if not isinstance(node, Tag) or node.name in _DROPPED_TAGS:
        return ""

    if node.name == "br":
        return " "
    if node.name == "code":
        code = node.get_text()
        return f"`{code}`" if code.strip() else ""

    inner = "".join(_inline(child) for child in node.children)
    if node.name in _INLINE_MARKERS:
        stripped = inner.strip()
        if not stripped:
            return inner
        marker = _INLINE_MARKERS[node.name]
        return f"{marker}{stripped}{marker}"
    if node.name == "a":
        href = node.get("href")
        stripped = inner.strip()
        if href and stripped:
            return f"[{stripped}]({href})"
        return inner
    return inner


def _inline_text(node: Tag) -> str:
    return _collapse("".join(_inline(child) for child in node.children))


def _table_to_markdown(table: Tag) -> List[str]:
    rows: List[List[str]] = []
    for tr in table.find_all("tr"):
        cells = [
            _inline_text(cell).replace("|", "\\|")
            for cell in tr.find_all(["th", "td"], recursive=False)
        ]
        if cells:
            rows.append(cells)
    if not rows:
        return []

    width = max(len(row) for row in rows)
    rows = [row + [""] * (width - len(row)) for row in rows]
    lines = ["| " + " | ".join(rows[0]) + " |", "|" + "---|" * width]
    lines.extend("| " + " | ".join(row) + " |" for row in rows[1:])
    return lines


def _list_to_markdown(node: Tag, depth: int) -> List[str]:
    lines: List[str] = []
    ordered = node.name == "ol"
    indent = "   " * depth
    for number, item in enumerate(node.find_all("li", recursive=False), start=1):
        marker = f"{number}." if ordered else "-"
        text_parts: List[str] = []
        nested: List[str] = []
        for child in item.children:
            if isinstance(child, Tag) and child.name in ("ul", "ol"):
                nested.extend(_list_to_markdown(child, depth + 1))
            else:
                text_parts.append(_inline(child))
        text = _collapse("".join(text_parts))
        if text:
            lines.append(f"{indent}{marker} {text}")
        lines.extend(nested)
    return lines


def _blocks(node: Tag) -> Iterator[str]:
    """Yield markdown blocks (without separators) for a container node."""
    pending: List[str] = []

    def flush() -> Iterator[str]:
        text = _collapse("".join(pending))
        pending.clear()
        if text:
            yield text

    for child in node.children:
        if isinstance(child, NavigableString):
            pending.append(_inline(child))
            continue
        if not isinstance(child, Tag) or child.name in _DROPPED_TAGS:
            continue

        name = child.name
        if name in _HEADING_TAGS:
            yield from flush()
            title = _inline_text(child)
            if title:
                yield "#" * _HEADING_TAGS[name] + " " + title
        elif name == "pre":
            yield from flush()
            yield "```\n" + child.get_text().rstrip("\n") + "\n```"
        elif name == "blockquote":
            yield from flush()
            inner = "\n\n".join(_blocks(child))
            if inner:
                yield "\n".join(("> " + line).rstrip() for line in inner.split("\n"))
        elif name in ("ul", "ol"):
            yield from flush()
            lines = _list_to_markdown(child, 0)
            if lines:
                yield "\n".join(lines)
        elif name == "table":
            yield from flush()
            lines = _table_to_markdown(child)
            if lines:
                yield "\n".join(lines)
        elif name == "hr":
            yield from flush()
        elif name in _BLOCK_TAGS:
            yield from flush()
            yield from _blocks(child)
        else:
            pending.append(_inline(child))

    yield from flush()


def xhtml_to_markdown(xhtml: str | bytes) -> str:
    """Convert one XHTML chapter into markdown.

    Examples:
        "<p>Hello <strong>world</strong>!</p>" → "Hello **world**!"
    """
    soup = BeautifulSoup(xhtml, "html.parser")
    root = soup.body or soup
    markdown = "\n\n".join(_blocks(root))
    return _BLANK_LINES_RE.sub("\n\n", markdown).strip()


# ---------------------------------------------------------------------------
# Container access
# ---------------------------------------------------------------------------


def sanitize_filename(name: str) -> str:
    """Keep letters, digits, space, '-' and '_'; replace the rest with '_'."""
    cleaned = "".join(
        ch if ch.isalnum() or ch in " -_" else "_" for ch in name
    )
    return cleaned.strip()


def _flatten_toc(toc) -> Iterator[Tuple[str, str]]:
    """Yield (href, title) pairs from EbookLib's nested TOC structure."""
    for entry in toc:
        if isinstance(entry, (tuple, list)):
            section, children = entry
            href = getattr(section, "href", None)
            if href:
                yield href, section.title
            yield from _flatten_toc(children)
        elif isinstance(entry, epub.Link):
            yield entry.href, entry.title
        elif isinstance(entry, epub.EpubHtml):
            yield entry.file_name, entry.title


def _chapter_title(item_name: str, toc_entries: List[Tuple[str, str]]) -> Optional[str]:
    for href, title in toc_entries:
        target = href.split("#", 1)[0]
        if not target or not title:
            continue
        if (
            item_name == target
            or item_name.endswith("/" + target)
            or target.endswith("/" + item_name)
        ):
            return title
    return None


def _open_book(path: Path) -> epub.EpubBook:
    if not path.is_file():
        raise DocumentIOError(path, "no such file")
    try:
        return epub.read_epub(str(path))
    except OSError as exc:
        raise DocumentIOError(path, exc) from exc
    except (epub.EpubException, zipfile.BadZipFile, KeyError) as exc:
        raise DocumentParseError(f"Failed to open EPUB: {exc}", location=path.name) from exc


def _book_title(book: epub.EpubBook, path: Path) -> str:
    for value, _attrs in book.get_metadata("DC", "title"):
        title = sanitize_filename(value or "")
        if title:
            return title
    return sanitize_filename(path.stem) or "epub-export"


def iter_chapters(book: epub.EpubBook) -> Iterator[EpubChapter]:
    """Yield the book's spine documents in reading order as markdown.

    Raises:
        DocumentParseError: When a chapter carries a parser-error marker.
    """
    toc_entries = list(_flatten_toc(book.toc))

    for index, (idref, _linear) in enumerate(book.spine):
        item = book.get_item_with_id(idref)
        if item is None or isinstance(item, epub.EpubNav):
            continue
        if not isinstance(item, epub.EpubHtml):
            continue

        content = item.get_content()
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")

        title = _chapter_title(item.get_name(), toc_entries)
        if _PARSER_ERROR_MARKER in content:
            raise DocumentParseError(
                "malformed XHTML",
                location=f"chapter {title or index + 1}",
            )

        yield EpubChapter(index=index, title=title, markdown=xhtml_to_markdown(content))


class EpubParser(BaseParser):
    """Parse ``.epub`` books by way of per-chapter markdown."""

    def __init__(self) -> None:
        self._markdown = MarkdownParser()

    @property
    def name(self) -> str:
        return "EPUB"

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".epub"})

    def book_markdown(self, path: Path) -> str:
        """Return the whole book as one markdown document."""
        book = _open_book(Path(path))
        parts: List[str] = []
        for chapter in iter_chapters(book):
            if not chapter.markdown.strip():
                continue
            if chapter.title:
                parts.append(f"# {chapter.title}")
            parts.append(chapter.markdown)
        return "\n\n".join(parts)

    def parse_file(self, path: Path) -> ParsedDocument:
        path = Path(path)
        logger.info("Parsing EPUB %s", path)
        return self._markdown.parse_str(self.book_markdown(path))

    def parse_str(self, text: str) -> ParsedDocument:
        raise DocumentParseError("EPUB parser does not support parsing from string")

    def export_chapters(self, path: Path, dest_root: Path | None = None) -> Tuple[Path, int]:
        """Write each non-empty chapter as ``NN-title.md``.

        Args:
            path: The EPUB file.
            dest_root: Directory in which the book folder is created
                (defaults to the current directory).

        Returns:
            (book directory, number of chapter files written)
        """
        path = Path(path)
        book = _open_book(path)
        out_dir = Path(dest_root or ".") / _book_title(book, path)
        out_dir.mkdir(parents=True, exist_ok=True)

        count = 0
        for chapter in iter_chapters(book):
            if not chapter.markdown.strip():
                continue
            count += 1
            title = sanitize_filename(chapter.title or "") or f"chapter-{count:02d}"
            target = out_dir / f"{count:02d}-{title}.md"
            target.write_text(chapter.markdown + "\n", encoding="utf-8")
            logger.debug("Wrote chapter %s", target)

        logger.info("Exported %d chapters to %s", count, out_dir)
        return out_dir, count

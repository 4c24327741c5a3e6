"""Markdown front end on markdown-it-py.

WHY: Markdown is the reader's native input. Block and inline parsing is
delegated to markdown-it-py; this module only configures it and hands
the syntax tree to the tokenizer.

HOW: One MarkdownIt instance, CommonMark preset plus the GFM ``table``
and ``strikethrough`` rules, is built lazily and cached. ``parse()``
yields a flat token list which SyntaxTreeNode turns into the nested tree
tokenize() walks.

RULES:
- Files are read as UTF-8; OSError and decode errors become DocumentIOError
- Raw HTML stays enabled so embedded parser-error markers are visible
  to the tokenizer
"""

from __future__ import annotations

import logging
from pathlib import Path

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from rsvp_reader.core.errors import DocumentIOError
from rsvp_reader.core.ir import ParsedDocument
from rsvp_reader.core.tokenizer import tokenize
from rsvp_reader.parsers.base import BaseParser

logger = logging.getLogger(__name__)

_md: MarkdownIt | None = None


def _get_markdown() -> MarkdownIt:
    """Return the shared, configured MarkdownIt instance."""
    global _md
    if _md is None:
        _md = MarkdownIt("commonmark").enable("table").enable("strikethrough")
    return _md


def parse_tree(text: str) -> SyntaxTreeNode:
    """Parse markdown text into a markdown-it-py syntax tree."""
    return SyntaxTreeNode(_get_markdown().parse(text))


class MarkdownParser(BaseParser):
    """Parse markdown text or ``.md`` files into tokens and sections."""

    @property
    def name(self) -> str:
        return "Markdown"

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".md", ".markdown"})

    def parse_str(self, text: str) -> ParsedDocument:
        return tokenize(parse_tree(text))

    def parse_file(self, path: Path) -> ParsedDocument:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentIOError(path, exc) from exc

        logger.info("Parsing markdown %s (%d chars)", path, len(text))
        return self.parse_str(text)

"""Abstract base parser: a source document → ParsedDocument.

WHY: The reader accepts more than one input format, but everything
downstream (timing, layout, exporters) only ever sees tokens and
sections. The base class fixes that contract so the CLI can pick a
parser by file extension and treat them all alike.

HOW: BaseParser is an ABC with a ``name`` property, the file
``extensions`` it handles, and two entry points: ``parse_str()`` for
in-memory text and ``parse_file()`` for paths on disk.

RULES:
- Subclasses MUST implement ``name``, ``extensions``, ``parse_str()``
  and ``parse_file()``
- Unreadable files raise DocumentIOError; malformed content raises
  DocumentParseError, never a partial ParsedDocument
- Register new parsers in PARSERS in parsers/__init__.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from rsvp_reader.core.ir import ParsedDocument


class BaseParser(ABC):
    """Abstract base for all document parsers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Markdown'."""

    @property
    @abstractmethod
    def extensions(self) -> frozenset[str]:
        """Lowercase file extensions handled, with the leading dot."""

    @abstractmethod
    def parse_str(self, text: str) -> ParsedDocument:
        """Parse an in-memory document."""

    @abstractmethod
    def parse_file(self, path: Path) -> ParsedDocument:
        """Read and parse a document from disk."""

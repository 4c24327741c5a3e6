"""Document parser registry, keyed by file extension.

WHY: The CLI only knows a file path. One lookup from the file's
extension to a parser class keeps format knowledge out of the CLI, and
adding a format is one import plus one line per extension here.

HOW: PARSERS maps lowercase extensions (with the dot) to parser
*classes*; parser_for() instantiates the right one for a path.

RULES:
- Keys are lowercase, with the leading dot
- Values are BaseParser subclasses (not instances)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rsvp_reader.parsers.epub import EpubParser
from rsvp_reader.parsers.markdown import MarkdownParser

if TYPE_CHECKING:
    from rsvp_reader.parsers.base import BaseParser

PARSERS: dict[str, type[BaseParser]] = {
    ".md": MarkdownParser,
    ".markdown": MarkdownParser,
    ".epub": EpubParser,
}


def parser_for(path: Path) -> BaseParser:
    """Return a parser instance for ``path``.

    Raises:
        ValueError: If the extension has no registered parser.
    """
    suffix = Path(path).suffix.lower()
    try:
        return PARSERS[suffix]()
    except KeyError:
        raise ValueError(
            f"Unsupported file type '{suffix or Path(path).name}'. "
            f"Supported: {', '.join(sorted(PARSERS))}"
        ) from None

"""Plain text exporter: the token stream read back as lightly marked-up text.

WHY: A quick way to see exactly what the reader will flash, in order,
without the terminal: skipped code blocks and images are gone, callout
markers are stripped, hyphen splits are visible as re-joined words.

HOW: Tokens are grouped into runs at the same boundaries the layout
engine breaks lines on (block changes and paragraph or container
starts). Each run becomes one paragraph with a prefix for its block kind.

RULES:
- One paragraph per run, blank line between paragraphs
- Hyphen fragments ("well-" + "known") are re-joined without a space
- Prefixes: "#"*level headings, "- " list items (indented by depth),
  "> " quotes, "> [!kind] " callouts, "| a | b |" table rows
- No trailing whitespace on any line
- Output suffix: "-reading.txt"; media type: "text/plain"
"""

from __future__ import annotations

from typing import List, Sequence

from rsvp_reader.core.ir import BlockContext, BlockKind, Section, TimedToken
from rsvp_reader.exporters.base import BaseExporter, ExportOutput
from rsvp_reader.view.layout import is_block_anchor


def _join_words(words: Sequence[str]) -> str:
    parts: List[str] = []
    for word in words:
        if parts and parts[-1].endswith("-"):
            parts[-1] += word
        else:
            parts.append(word)
    return " ".join(parts)


def _table_row(run: Sequence[TimedToken]) -> str:
    cells: List[List[str]] = []
    for timed in run:
        if timed.token.timing_hint.is_cell_start or not cells:
            cells.append([])
        cells[-1].append(timed.token.word)
    return "| " + " | ".join(_join_words(cell) for cell in cells) + " |"


def _prefix(block: BlockContext) -> str:
    if block.kind is BlockKind.HEADING:
        return "#" * max(block.level, 1) + " "
    if block.kind is BlockKind.LIST_ITEM:
        return "  " * max(block.level - 1, 0) + "- "
    if block.kind is BlockKind.QUOTE:
        return "> " * max(block.level, 1)
    if block.kind is BlockKind.CALLOUT:
        return f"> [!{block.callout}] "
    return ""


def _render_run(run: Sequence[TimedToken]) -> str:
    block = run[0].token.block
    if block.kind is BlockKind.TABLE_CELL:
        return _table_row(run)
    text = _join_words([t.token.word for t in run])
    return (_prefix(block) + text).rstrip()


def runs(stream: Sequence[TimedToken]) -> List[List[TimedToken]]:
    """Split the stream into runs, one per block of text."""
    result: List[List[TimedToken]] = []
    for index, timed in enumerate(stream):
        if not result or is_block_anchor(stream, index):
            result.append([])
        result[-1].append(timed)
    return result


class PlainTextExporter(BaseExporter):
    """Exporter that writes the reading order as plain paragraphs."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def export(
        self,
        stream: Sequence[TimedToken],
        sections: Sequence[Section],
        source_name: str,
        wpm: int,
    ) -> List[ExportOutput]:
        paragraphs = [_render_run(run) for run in runs(stream)]
        content = "\n\n".join(paragraphs)
        if content:
            content += "\n"
        return [ExportOutput(suffix="-reading.txt", content=content, media_type="text/plain")]

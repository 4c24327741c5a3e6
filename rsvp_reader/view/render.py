"""Context pane rendering model: laid-out lines → styled, padded display lines.

WHY: The layout engine decides *which* words share a line; how a line
looks (indent, prefix glyph, column alignment, which words are revealed,
how dim it is) is a separate, pure concern. Keeping it free of curses
means every rule here is testable on plain strings.

HOW: compose_context() takes the window's DocLines and the cursor and
returns the "before" and "after" panes as RenderedLine lists. Table
columns are measured first, per contiguous table, across the lines
shown in either pane, so a column keeps its width in both panes and a
row scrolled out of view does not widen it.

RULES:
- Before pane: lines up to and including the cursor line, tokens with
  index < cursor visible; after pane: from the cursor line on, tokens
  with index > cursor visible. Hidden words become blanks of equal width
  so nothing shifts when they are revealed
- Centering only for headings, quotes and callouts, and only while the
  content takes < CENTER_THRESHOLD of the width; everything else sits at
  MIN_PADDING
- Gray levels fall off with distance from the cursor line
- Block tables (prefixes, gutter hints, centering) cover every BlockKind
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from rsvp_reader.core.ir import BlockContext, BlockKind, TimedToken, TokenStyle
from rsvp_reader.view.layout import MIN_PADDING, DocLine, find_cursor_line

CENTER_THRESHOLD = 0.6
GRAY_LEVELS = (200, 150, 110, 80, 60)
CELL_SEPARATOR = " | "
ROW_TERMINATOR = "|"

BLOCK_PREFIXES: Dict[BlockKind, str] = {
    BlockKind.PARAGRAPH: "",
    BlockKind.HEADING: "",
    BlockKind.LIST_ITEM: "* ",
    BlockKind.QUOTE: "| ",
    BlockKind.TABLE_CELL: "| ",
    BlockKind.CALLOUT: "[i] ",
}

BLOCK_HINTS: Dict[BlockKind, str] = {
    BlockKind.PARAGRAPH: "",
    BlockKind.HEADING: "#",
    BlockKind.LIST_ITEM: "-",
    BlockKind.QUOTE: ">",
    BlockKind.TABLE_CELL: "|",
    BlockKind.CALLOUT: "[!]",
}

CENTERED_BLOCKS = frozenset({BlockKind.HEADING, BlockKind.QUOTE, BlockKind.CALLOUT})


class Pane(str, enum.Enum):
    BEFORE = "before"
    AFTER = "after"


def block_prefix(block: BlockContext) -> str:
    return BLOCK_PREFIXES[block.kind]


def hint_chars(block: Optional[BlockContext]) -> str:
    """Gutter glyph for a block: '#' per heading level, '-', '>', '|', '[!]'."""
    if block is None:
        return ""
    if block.kind is BlockKind.HEADING:
        return "#" * min(max(block.level, 1), 6)
    return BLOCK_HINTS[block.kind]


def brightness(distance: int) -> int:
    """Gray level (0-255) for a line ``distance`` lines from the cursor line."""
    return GRAY_LEVELS[min(max(distance, 0), len(GRAY_LEVELS) - 1)]


def calculate_padding(content_width: int, available_width: int, center: bool = True) -> int:
    """Left padding for a line.

    Examples:
        (20, 80) → 30   centered
        (47, 80) → 16   just under the threshold
        (48, 80) → 2    at the threshold, left-aligned
        (0, 80)  → 40
    """
    if available_width <= 0:
        return MIN_PADDING
    if center and content_width / available_width < CENTER_THRESHOLD:
        return max((available_width - content_width) // 2, MIN_PADDING)
    return MIN_PADDING


@dataclass(frozen=True)
class Span:
    """A run of display text. style is None for glyphs and padding."""

    text: str
    style: Optional[TokenStyle] = None
    visible: bool = True


@dataclass(frozen=True)
class RenderedLine:
    padding: int = 0
    prefix: str = ""
    spans: Tuple[Span, ...] = ()
    gray: int = GRAY_LEVELS[-1]
    hint: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.spans

    @property
    def text(self) -> str:
        if self.is_blank:
            return ""
        return " " * self.padding + self.prefix + "".join(s.text for s in self.spans)


# ---------------------------------------------------------------------------
# Table columns
# ---------------------------------------------------------------------------

# Column widths for one contiguous table, keyed by column index.
ColumnWidths = Dict[int, int]


def _is_table_line(line: DocLine) -> bool:
    first = line.first_token
    return first is not None and first.block.kind is BlockKind.TABLE_CELL


def _cells(line: DocLine) -> List[Tuple[int, List[TimedToken], List[int]]]:
    """Split a table line into (column, tokens, global indexes) per cell.

    Column numbers come from the hint; tokens without one are numbered by
    counting cell starts along the line.
    """
    cells: List[Tuple[int, List[TimedToken], List[int]]] = []
    fallback = -1
    for global_index, timed in line.tokens:
        hint = timed.token.timing_hint
        if hint.is_cell_start or not cells:
            fallback += 1
            column = hint.table_column if hint.table_column is not None else fallback
            if cells and cells[-1][0] == column:
                cells[-1][1].append(timed)
                cells[-1][2].append(global_index)
                continue
            cells.append((column, [timed], [global_index]))
        else:
            cells[-1][1].append(timed)
            cells[-1][2].append(global_index)
    return cells


def _cell_width(tokens: Sequence[TimedToken]) -> int:
    return sum(len(t.token.word) + 1 for t in tokens)


def measure_table_columns(lines: Sequence[DocLine]) -> List[Optional[ColumnWidths]]:
    """First pass: per line, the column widths of the table it belongs to.

    Non-table lines map to None. Blank separator lines do not end a
    table; any other non-table line does.
    """
    result: List[Optional[ColumnWidths]] = [None] * len(lines)
    group: List[int] = []
    widths: ColumnWidths = {}

    def close() -> None:
        for i in group:
            result[i] = widths
        group.clear()

    for i, line in enumerate(lines):
        if line.is_blank:
            continue
        if not _is_table_line(line):
            if group:
                close()
                widths = {}
            continue
        group.append(i)
        for column, tokens, _indexes in _cells(line):
            widths[column] = max(widths.get(column, 0), _cell_width(tokens))
    if group:
        close()
    return result


# ---------------------------------------------------------------------------
# Line rendering
# ---------------------------------------------------------------------------


def _is_visible(global_index: int, cursor: int, pane: Pane) -> bool:
    if pane is Pane.BEFORE:
        return global_index < cursor
    return global_index > cursor


def _word_span(global_index: int, timed: TimedToken, cursor: int, pane: Pane) -> Span:
    word = timed.token.word
    if _is_visible(global_index, cursor, pane):
        return Span(word + " ", timed.token.style, True)
    return Span(" " * (len(word) + 1), timed.token.style, False)


def _table_spans(
    line: DocLine,
    widths: ColumnWidths,
    cursor: int,
    pane: Pane,
) -> List[Span]:
    cells = {column: (tokens, indexes) for column, tokens, indexes in _cells(line)}
    first_column = min(cells)
    last_column = max(widths) if widths else max(cells)

    spans: List[Span] = []
    for column in range(first_column, last_column + 1):
        if column != first_column:
            spans.append(Span(CELL_SEPARATOR))
        tokens, indexes = cells.get(column, ([], []))
        for global_index, timed in zip(indexes, tokens):
            spans.append(_word_span(global_index, timed, cursor, pane))
        fill = widths.get(column, 0) - _cell_width(tokens)
        if fill > 0:
            spans.append(Span(" " * fill))
    spans.append(Span(ROW_TERMINATOR))
    return spans


def render_line(
    line: DocLine,
    cursor: int,
    pane: Pane,
    available_width: int,
    distance: int,
    column_widths: Optional[ColumnWidths] = None,
    show_hints: bool = True,
) -> RenderedLine:
    """Render one DocLine for a pane.

    Args:
        line: The laid-out line.
        cursor: Global index of the displayed word.
        pane: Which side of the cursor this line is drawn on.
        available_width: Width of the pane in columns.
        distance: Lines between this line and the cursor line.
        column_widths: Table column widths when the line is a table row.
        show_hints: Whether to fill in the gutter hint.
    """
    first = line.first_token
    if line.is_blank or first is None:
        return RenderedLine(gray=brightness(distance))

    block = first.block
    prefix = block_prefix(block)

    if block.kind is BlockKind.TABLE_CELL:
        spans = _table_spans(line, column_widths or {}, cursor, pane)
    else:
        spans = [_word_span(i, timed, cursor, pane) for i, timed in line.tokens]

    content_width = len(prefix) + sum(len(s.text) for s in spans)
    padding = calculate_padding(content_width, available_width, block.kind in CENTERED_BLOCKS)

    return RenderedLine(
        padding=padding,
        prefix=prefix,
        spans=tuple(spans),
        gray=brightness(distance),
        hint=hint_chars(block) if show_hints else "",
    )


def compose_context(
    lines: Sequence[DocLine],
    cursor: int,
    available_width: int,
    before_height: int,
    after_height: int,
    show_hints: bool = True,
) -> Tuple[List[RenderedLine], List[RenderedLine]]:
    """Build both context panes around the cursor line.

    Returns:
        (before, after). ``before`` is top-to-bottom and ends with the
        cursor line; ``after`` starts with the cursor line.
    """
    if not lines:
        return [], []

    cursor_line, _word = find_cursor_line(lines, cursor)
    before_start = max(cursor_line + 1 - before_height, 0)
    after_end = min(cursor_line + after_height, len(lines))

    # Table columns are sized from the visible lines only.
    first_visible = min(before_start, cursor_line)
    visible = lines[first_visible:max(after_end, cursor_line + 1)]
    widths = measure_table_columns(visible)

    before: List[RenderedLine] = []
    for i in range(before_start, cursor_line + 1):
        before.append(render_line(
            lines[i], cursor, Pane.BEFORE, available_width,
            distance=cursor_line - i, column_widths=widths[i - first_visible],
            show_hints=show_hints,
        ))

    after: List[RenderedLine] = []
    for i in range(cursor_line, after_end):
        after.append(render_line(
            lines[i], cursor, Pane.AFTER, available_width,
            distance=i - cursor_line, column_widths=widths[i - first_visible],
            show_hints=show_hints,
        ))

    return before, after

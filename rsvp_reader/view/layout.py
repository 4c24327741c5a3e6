"""Windowed, non-reflowing layout of the token stream into context lines.

WHY: The context panes above and below the RSVP word show the document
as lines of text. Those lines must not jump around as the cursor moves:
if "the quick brown" is one line while reading "the", it must still be
that line while reading "brown". Laying out the whole document on every
frame would guarantee that, but costs O(document) per frame.

HOW: Lay out only a window of tokens around the cursor. The window
start is derived from a quantized cursor (multiples of WINDOW_QUANTUM),
then moved back to the nearest *line anchor*, a token that starts a
line regardless of what precedes it (index 0, a block change, or the
start of a paragraph / heading / list item / quote / callout). A stretch
with no such anchor for ANCHOR_SEARCH tokens is forced to break at each
multiple of WINDOW_QUANTUM, so a quantized start is always an anchor.
Greedy packing from an anchor yields exactly the lines the
whole-document layout would, so frames agree wherever their windows
overlap.

RULES:
- Display width of a word: code points + 1 (trailing space)
- A new line starts on (a) block change (cells of one table row stay
  together, a row change breaks); (b) entering or leaving a table;
  (c) overflow past max_chars; (d) a paragraph, heading or container
  block start; (e) a forced anchor
- A blank separator line follows every break except overflow and (e)
- max_chars = min(viewport_width - (MIN_PADDING + 4), max_line_chars)
- The window never exceeds WINDOW_BEHIND + WINDOW_QUANTUM + ANCHOR_SEARCH
  + WINDOW_AHEAD tokens, whatever the document length
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from rsvp_reader.core.ir import BlockKind, TimedToken, Token

MIN_PADDING = 2
# Room kept for padding, prefix glyph and the gutter.
_LINE_RESERVE = MIN_PADDING + 4

WINDOW_AHEAD = 500
WINDOW_BEHIND = 500
WINDOW_QUANTUM = 250
ANCHOR_SEARCH = 250

_BLOCK_START_KINDS = frozenset({
    BlockKind.PARAGRAPH,
    BlockKind.HEADING,
    BlockKind.LIST_ITEM,
    BlockKind.QUOTE,
    BlockKind.CALLOUT,
})


@dataclass(frozen=True)
class DocLine:
    """One laid-out context line: (global index, token) pairs, or a blank separator."""

    tokens: Tuple[Tuple[int, TimedToken], ...] = ()
    is_blank: bool = False

    @classmethod
    def blank(cls) -> DocLine:
        return cls((), True)

    @property
    def first_token(self) -> Optional[Token]:
        if not self.tokens:
            return None
        return self.tokens[0][1].token


def starts_block(token: Token) -> bool:
    """True for the first word of a paragraph, heading, list item, quote or callout."""
    return token.block.kind in _BLOCK_START_KINDS and token.timing_hint.is_block_start


def is_block_anchor(tokens: Sequence[TimedToken], index: int) -> bool:
    """True if token ``index`` opens a new block of text."""
    if index <= 0:
        return True
    token = tokens[index].token
    return token.block != tokens[index - 1].token.block or starts_block(token)


def is_forced_anchor(tokens: Sequence[TimedToken], index: int) -> bool:
    """True at a WINDOW_QUANTUM multiple that has no block anchor close behind it.

    Long runs without structure (one huge paragraph) still need an anchor
    for every quantized window start. The result depends only on the
    ANCHOR_SEARCH tokens before ``index``.
    """
    if index <= 0 or index % WINDOW_QUANTUM or is_block_anchor(tokens, index):
        return False
    floor = max(index - ANCHOR_SEARCH, 0)
    return not any(is_block_anchor(tokens, i) for i in range(floor, index))


def is_line_anchor(tokens: Sequence[TimedToken], index: int) -> bool:
    """True if token ``index`` starts a line whatever came before it."""
    return is_block_anchor(tokens, index) or is_forced_anchor(tokens, index)


def window_bounds(tokens: Sequence[TimedToken], cursor: int) -> Tuple[int, int]:
    """Token range [start, end) to lay out for a frame at ``cursor``.

    Examples:
        cursor 0     → start 0
        cursor 1_000 → start searched back from 500
        cursor 1_249 → same start as cursor 1_000
    """
    total = len(tokens)
    end = min(total, cursor + WINDOW_AHEAD)

    base = max(cursor - WINDOW_BEHIND, 0)
    base = min((base // WINDOW_QUANTUM) * WINDOW_QUANTUM, max(total - 1, 0))

    start = base
    floor = max(base - ANCHOR_SEARCH, 0)
    for index in range(base, floor - 1, -1):
        if is_line_anchor(tokens, index):
            start = index
            break
    return start, max(end, start)


def compute_lines(
    tokens: Sequence[TimedToken],
    cursor: int,
    viewport_width: int,
    max_line_chars: int,
) -> List[DocLine]:
    """Lay out the window around ``cursor`` into context lines.

    Args:
        tokens: The full timed token stream.
        cursor: Index of the word currently displayed.
        viewport_width: Width of the context pane in columns.
        max_line_chars: Upper bound on line width (the context width).

    Returns:
        Lines in document order. Empty if the stream is empty.
    """
    start, end = window_bounds(tokens, cursor)
    max_chars = min(viewport_width - _LINE_RESERVE, max_line_chars)

    lines: List[DocLine] = []
    current: List[Tuple[int, TimedToken]] = []
    width = 0
    last_block = None
    last_row: Optional[int] = None

    for index in range(start, end):
        timed = tokens[index]
        token = timed.token
        row = token.block.table_row
        in_table = row is not None
        was_in_table = last_row is not None

        if last_block is None:
            block_changed = False
        elif in_table and was_in_table:
            block_changed = row != last_row
        else:
            block_changed = token.block != last_block

        table_transition = last_block is not None and in_table != was_in_table
        block_start = starts_block(token)
        forced = is_forced_anchor(tokens, index)
        word_width = len(token.word) + 1
        overflow = width + word_width > max_chars

        if current and (block_changed or table_transition or block_start or forced or overflow):
            lines.append(DocLine(tuple(current)))
            current = []
            width = 0
            if block_changed or table_transition or block_start:
                lines.append(DocLine.blank())

        current.append((index, timed))
        width += word_width
        last_block = token.block
        last_row = row

    if current:
        lines.append(DocLine(tuple(current)))
    return lines


def find_cursor_line(lines: Sequence[DocLine], cursor: int) -> Tuple[int, int]:
    """(line index, word index) holding ``cursor``; (0, 0) when absent."""
    for line_index, line in enumerate(lines):
        for word_index, (global_index, _token) in enumerate(line.tokens):
            if global_index == cursor:
                return line_index, word_index
    return 0, 0

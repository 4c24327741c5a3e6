"""Per-word display timing: hint generation and duration calculation.

WHY: Showing every word for exactly 60000/WPM milliseconds reads badly.
Long words need longer to recognize, sentence ends need a beat, and a
new paragraph or heading needs a pause so the reader notices the shift.

HOW: generate_hint() turns a word plus structural flags into a
TimingHint of three additive modifiers (length, punctuation, structure),
once, at tokenization time. calculate_duration() adds the modifiers to
the base duration at a given WPM. The modifiers are calibrated at
300 WPM and scaled by 300/wpm, so the relative slowdowns survive speed
changes instead of vanishing at high WPM.

RULES:
- Base duration: 60000 / wpm
- Length modifier: 0 for <= 6 chars, +10 ms/char for 7-10, +15 ms/char
  beyond 10 (monotonic, independent of which characters)
- Punctuation modifier from the trailing character: ". ! ?" > ", : ;"
- Structure modifier: paragraph end / last table cell (300) wins over
  new block (150); otherwise 0
- Duration is rounded and never below MIN_DURATION_MS (50)
- Non-positive wpm is treated as 1, so the function is total
"""

from __future__ import annotations

from typing import Optional

from rsvp_reader.core.ir import TimingHint, Token

BASELINE_WPM = 300
MIN_DURATION_MS = 50

_LONG_WORD_THRESHOLD = 6
_MEDIUM_WORD_CAP = 10
_MEDIUM_WORD_STEP_MS = 10
_LONG_WORD_STEP_MS = 15

SENTENCE_END_PUNCTUATION = frozenset(".!?")
CLAUSE_PUNCTUATION = frozenset(",:;")

SENTENCE_END_MS = 200
CLAUSE_MS = 100

PARAGRAPH_END_MS = 300
NEW_BLOCK_MS = 150


def word_length_modifier(word: str) -> int:
    """Extra milliseconds for long words (0 up to 6 characters)."""
    length = len(word)
    if length <= _LONG_WORD_THRESHOLD:
        return 0
    modifier = (min(length, _MEDIUM_WORD_CAP) - _LONG_WORD_THRESHOLD) * _MEDIUM_WORD_STEP_MS
    if length > _MEDIUM_WORD_CAP:
        modifier += (length - _MEDIUM_WORD_CAP) * _LONG_WORD_STEP_MS
    return modifier


def punctuation_modifier(word: str) -> int:
    """Extra milliseconds keyed off the word's trailing character."""
    if not word:
        return 0
    last = word[-1]
    if last in SENTENCE_END_PUNCTUATION:
        return SENTENCE_END_MS
    if last in CLAUSE_PUNCTUATION:
        return CLAUSE_MS
    return 0


def ends_sentence(word: str) -> bool:
    return bool(word) and word[-1] in SENTENCE_END_PUNCTUATION


def generate_hint(
    word: str,
    is_paragraph_end: bool,
    is_new_block: bool,
    is_last_table_cell: bool,
    is_cell_start: bool = False,
    table_column: Optional[int] = None,
) -> TimingHint:
    """Build the TimingHint for one emitted word.

    Args:
        word: The display word.
        is_paragraph_end: Last word of its run and ends a sentence.
        is_new_block: First token since the most recent block entry.
        is_last_table_cell: Closes the last cell of a table row.
        is_cell_start: First token of a table cell.
        table_column: Column index for table cell tokens, else None.

    Returns:
        An immutable TimingHint.
    """
    if is_paragraph_end or is_last_table_cell:
        structure = PARAGRAPH_END_MS
    elif is_new_block:
        structure = NEW_BLOCK_MS
    else:
        structure = 0

    return TimingHint(
        word_length_modifier=word_length_modifier(word),
        punctuation_modifier=punctuation_modifier(word),
        structure_modifier=structure,
        is_cell_start=is_cell_start,
        table_column=table_column,
        is_block_start=is_new_block,
    )


def calculate_duration(token: Token, wpm: int) -> int:
    """Display duration for a token at the given reading speed.

    Args:
        token: The token whose timing hint is applied.
        wpm: Words per minute.

    Returns:
        Duration in whole milliseconds, at least MIN_DURATION_MS.
    """
    wpm = max(int(wpm), 1)
    base_ms = 60_000 / wpm
    scale = BASELINE_WPM / wpm
    total = base_ms + token.timing_hint.total * scale
    return max(int(round(total)), MIN_DURATION_MS)

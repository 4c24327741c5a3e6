"""Optimal Recognition Point (ORP) for RSVP display.

The ORP is the character the eye should fixate on, a little left of the
word's middle. The terminal frontend highlights it and aligns every word
so the ORP lands in the same column.

Offset by alphabetic length: 1-3 → 0, 4-6 → 1, 7-9 → 2, 10+ → 3.
Leading non-letters (quotes, brackets, dashes) are skipped so the
highlight lands on a letter.
"""

from __future__ import annotations


def _offset_for_length(length: int) -> int:
    if length <= 3:
        return 0
    if length <= 6:
        return 1
    if length <= 9:
        return 2
    return 3


def calculate_orp(word: str) -> int:
    """Return the 0-based code-point index of the highlight character.

    Always satisfies ``0 <= orp < max(1, len(word))``.
    """
    if not word:
        return 0

    leading = 0
    for ch in word:
        if ch.isalpha():
            break
        leading += 1

    alpha_len = sum(1 for ch in word if ch.isalpha())
    if alpha_len == 0:
        # No letters at all ("1984", "..."): measure the whole word.
        return min(_offset_for_length(len(word)), len(word) - 1)

    return min(leading + _offset_for_length(alpha_len), len(word) - 1)

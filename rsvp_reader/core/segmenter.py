"""Word segmentation for text runs, with dash and hyphen splitting.

WHY: RSVP shows one word at a time, so every text run from the document
tree has to be cut into display units. Whitespace alone is not enough:
"Hello—world" must flash as two words, and long hyphenated compounds
("well-known") read better as two flashes, while short ones ("co-op")
are recognized faster whole.

HOW: Split on whitespace, then on em/en dashes, then apply the hyphen
rule to whatever still contains an ASCII hyphen.

RULES:
- Em-dash (U+2014) and en-dash (U+2013) are hard word boundaries and
  are dropped
- Hyphenated run: split only if ANY portion is longer than 3 characters
- Every non-final portion keeps its trailing hyphen
- Empty portions (from "--" or a leading/trailing hyphen) are skipped
- Lengths are code-point counts (len() on str), never bytes
- Inline code never comes through here; the tokenizer keeps it verbatim
"""

from __future__ import annotations

import re
from typing import List

_DASH_RE = re.compile("[—–]")

# Portions at or below this length keep a hyphenated run together.
_SHORT_PORTION_MAX = 3


def split_hyphenated_word(word: str) -> List[str]:
    """Split a hyphenated run when any portion is longer than 3 characters.

    Examples:
        "well-known"    → ["well-", "known"]
        "co-op"         → ["co-op"]
        "mother-in-law" → ["mother-", "in-", "law"]
    """
    portions = word.split("-")
    if len(portions) < 2:
        return [word]

    if not any(len(p) > _SHORT_PORTION_MAX for p in portions):
        return [word]

    last = len(portions) - 1
    result: List[str] = []
    for i, portion in enumerate(portions):
        if not portion:
            continue
        result.append(portion if i == last else portion + "-")
    return result


def segment(text: str) -> List[str]:
    """Split a raw text run into display words.

    Args:
        text: One text run from the document tree.

    Returns:
        Non-empty words in reading order. Empty or whitespace-only input
        returns an empty list.
    """
    words: List[str] = []
    for run in text.split():
        for part in _DASH_RE.split(run):
            if not part:
                continue
            if "-" in part:
                words.extend(split_hyphenated_word(part))
            else:
                words.append(part)
    return [w for w in words if w]

"""Timed token stream: tokens + WPM → display durations and ORP indexes."""

from __future__ import annotations

from typing import List, Sequence

from rsvp_reader.core.ir import TimedToken, Token
from rsvp_reader.core.orp import calculate_orp
from rsvp_reader.core.timing import calculate_duration


def build_timed_stream(tokens: Sequence[Token], wpm: int) -> List[TimedToken]:
    """Pair every token with its duration at ``wpm`` and its ORP index.

    Order and length are preserved. Durations are a snapshot at ``wpm``;
    the reader recomputes the current word's duration when the speed
    changes.
    """
    return [
        TimedToken(
            token=token,
            duration_ms=calculate_duration(token, wpm),
            orp_position=calculate_orp(token.word),
        )
        for token in tokens
    ]

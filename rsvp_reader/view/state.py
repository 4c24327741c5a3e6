"""Reader navigation state and key dispatch.

WHY: The curses loop should only draw and wait for keys. Everything the
keys *do* (move, change speed, open the outline) lives here, as plain
state that tests can drive without a terminal.

HOW: ReaderState owns the timed token stream, the section list, the
cursor and the UI modes. handle_key() maps a key name (as produced by
the terminal layer) to one operation, depending on the view mode.

RULES:
- position always stays in [0, max(len(tokens) - 1, 0)]
- wpm moves in WPM_STEP increments and stays in [WPM_MIN, WPM_MAX]
- current_duration_ms() uses the *current* wpm, not the snapshot the
  stream was built at, so speed changes apply to the very next word
- "q" and ctrl-c quit from any mode; "?" toggles help from any mode
"""

from __future__ import annotations

import enum
from typing import List, Optional, Sequence

from rsvp_reader.config import (
    NAVIGATION_STEP,
    WPM_MAX,
    WPM_MIN,
    WPM_STEP,
    ReaderOptions,
)
from rsvp_reader.core.ir import Section, TimedToken
from rsvp_reader.core.timing import calculate_duration

# Key names produced by the terminal layer for non-printable keys.
KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_ENTER = "enter"
KEY_ESCAPE = "esc"
KEY_CTRL_C = "ctrl-c"

_QUIT_KEYS = frozenset({"q", KEY_CTRL_C})


class ViewMode(str, enum.Enum):
    READING = "reading"
    OUTLINE = "outline"


class ReaderState:
    """Cursor, speed and mode for one reading session."""

    def __init__(
        self,
        tokens: Sequence[TimedToken],
        sections: Sequence[Section],
        options: Optional[ReaderOptions] = None,
    ) -> None:
        self.tokens: List[TimedToken] = list(tokens)
        self.sections: List[Section] = list(sections)
        self.options = options or ReaderOptions()
        self.position = 0
        self.wpm = self.options.wpm
        self.paused = False
        self.view_mode = ViewMode.READING
        self.outline_selection = 0
        self.show_help = False

    # -- queries -----------------------------------------------------------

    @property
    def last_index(self) -> int:
        return max(len(self.tokens) - 1, 0)

    @property
    def at_end(self) -> bool:
        return self.position >= self.last_index

    def current_token(self) -> Optional[TimedToken]:
        if 0 <= self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def current_section_title(self) -> Optional[str]:
        """Title of the last section starting at or before the cursor."""
        for section in reversed(self.sections):
            if self.position >= section.token_start:
                return section.title
        return None

    def progress(self) -> float:
        if not self.tokens:
            return 0.0
        return self.position / len(self.tokens)

    def current_duration_ms(self) -> int:
        """Display time for the current word at the current wpm."""
        timed = self.current_token()
        if timed is None:
            return 200
        return calculate_duration(timed.token, self.wpm)

    # -- reading -----------------------------------------------------------

    def advance(self) -> None:
        if self.position < self.last_index:
            self.position += 1

    def rewind(self) -> None:
        self.position = max(self.position - NAVIGATION_STEP, 0)

    def skip(self) -> None:
        self.position = min(self.position + NAVIGATION_STEP, self.last_index)

    def increase_wpm(self) -> None:
        self.wpm = min(self.wpm + WPM_STEP, WPM_MAX)

    def decrease_wpm(self) -> None:
        self.wpm = max(self.wpm - WPM_STEP, WPM_MIN)

    def toggle_pause(self) -> None:
        self.paused = not self.paused

    def toggle_help(self) -> None:
        self.show_help = not self.show_help

    # -- outline -----------------------------------------------------------

    def toggle_outline(self) -> None:
        if self.view_mode is ViewMode.READING:
            self.view_mode = ViewMode.OUTLINE
        else:
            self.view_mode = ViewMode.READING

    def outline_up(self) -> None:
        self.outline_selection = max(self.outline_selection - 1, 0)

    def outline_down(self) -> None:
        if self.sections:
            self.outline_selection = min(self.outline_selection + 1, len(self.sections) - 1)

    def jump_to_section(self) -> None:
        """Move the cursor to the selected section and return to reading."""
        if 0 <= self.outline_selection < len(self.sections):
            target = self.sections[self.outline_selection].token_start
            self.position = min(target, self.last_index)
            self.view_mode = ViewMode.READING

    # -- input -------------------------------------------------------------

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the session should end."""
        if key in _QUIT_KEYS:
            return False
        if key == "?":
            self.toggle_help()
            return True

        if self.view_mode is ViewMode.READING:
            if key == " ":
                self.toggle_pause()
            elif key in ("j", KEY_DOWN):
                self.decrease_wpm()
            elif key in ("k", KEY_UP):
                self.increase_wpm()
            elif key in ("h", KEY_LEFT):
                self.rewind()
            elif key in ("l", KEY_RIGHT):
                self.skip()
            elif key == "o":
                self.toggle_outline()
        else:
            if key in ("j", KEY_DOWN):
                self.outline_down()
            elif key in ("k", KEY_UP):
                self.outline_up()
            elif key == KEY_ENTER:
                self.jump_to_section()
            elif key in (KEY_ESCAPE, "o"):
                self.toggle_outline()
        return True

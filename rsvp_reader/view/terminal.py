"""curses frontend: the interactive RSVP reading loop.

WHY: Reading happens in a terminal. This module is the only place that
touches the screen; everything it draws comes from the pure layout,
render and state modules, so the loop itself stays thin.

HOW: curses.wrapper() sets up and always restores the terminal. Each
iteration draws a frame, then waits for a key for at most the time left
on the current word (at the *current* WPM), or 100 ms while paused or in
the outline. When the word's time is up the cursor advances and the
shown duration is recorded for the post-session timing report.

RULES:
- Screen: context above, guide / word / guide in the middle, context
  below, two status lines at the bottom; optional hint gutter on the left
- The word is placed so its ORP character sits in the centre column
- Reaching the last word pauses the reader instead of spinning on it
- Text is clipped to the window; nothing here raises on small terminals
"""

from __future__ import annotations

import curses
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from rsvp_reader.config import GUTTER_WIDTH
from rsvp_reader.core.ir import StyleKind, TokenStyle
from rsvp_reader.view.layout import compute_lines
from rsvp_reader.view.render import (
    GRAY_LEVELS,
    RenderedLine,
    brightness,
    calculate_padding,
    compose_context,
    hint_chars,
)
from rsvp_reader.view.state import (
    KEY_CTRL_C,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_LEFT,
    KEY_RIGHT,
    KEY_UP,
    ReaderState,
    ViewMode,
)

logger = logging.getLogger(__name__)

IDLE_TIMEOUT_MS = 100
STATUS_HEIGHT = 2
GUTTER_PADDING = 2

_KEY_NAMES: Dict[int, str] = {
    curses.KEY_UP: KEY_UP,
    curses.KEY_DOWN: KEY_DOWN,
    curses.KEY_LEFT: KEY_LEFT,
    curses.KEY_RIGHT: KEY_RIGHT,
    curses.KEY_ENTER: KEY_ENTER,
    10: KEY_ENTER,
    13: KEY_ENTER,
    27: KEY_ESCAPE,
    3: KEY_CTRL_C,
}

HELP_LINES = (
    "CONTROLS",
    "",
    "Space     Pause/Resume",
    "j/Down    Slower (-25 WPM)",
    "k/Up      Faster (+25 WPM)",
    "h/Left    Back 10 words",
    "l/Right   Forward 10 words",
    "o         Toggle outline",
    "q         Quit",
    "?         Toggle help",
    "",
    "Press ? to close",
)


@dataclass(frozen=True)
class WordTiming:
    """How long one word was actually shown."""

    position: int
    word: str
    duration_ms: int


def translate_key(code: int) -> Optional[str]:
    """Map a curses key code to a key name understood by ReaderState."""
    if code in _KEY_NAMES:
        return _KEY_NAMES[code]
    if 32 <= code < 127:
        return chr(code)
    return None


class _Palette:
    """curses attributes for gray levels and word styles."""

    def __init__(self, styling: bool) -> None:
        self.styling = styling
        self._grays: Dict[int, int] = {}
        self.orp = curses.A_BOLD
        self.accent = curses.A_BOLD

        if not curses.has_colors():
            return
        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(1, curses.COLOR_RED, -1)
        curses.init_pair(2, curses.COLOR_CYAN, -1)
        self.orp = curses.color_pair(1) | curses.A_BOLD
        self.accent = curses.color_pair(2)

        if curses.COLORS >= 256 and curses.COLOR_PAIRS > 2 + len(GRAY_LEVELS):
            for offset, level in enumerate(GRAY_LEVELS):
                # xterm grayscale ramp 232..255 covers 8..238 in steps of 10
                color = 232 + min(max((level - 8) // 10, 0), 23)
                pair = 3 + offset
                curses.init_pair(pair, color, -1)
                self._grays[level] = curses.color_pair(pair)

    def gray(self, level: int) -> int:
        if level in self._grays:
            return self._grays[level]
        return curses.A_NORMAL if level >= GRAY_LEVELS[1] else curses.A_DIM

    def style(self, style: Optional[TokenStyle]) -> int:
        if not self.styling or style is None:
            return 0
        attr = 0
        if style.is_bold:
            attr |= curses.A_BOLD
        if style.is_italic:
            attr |= curses.A_ITALIC
        if style.kind is StyleKind.CODE:
            attr |= curses.A_REVERSE
        if style.kind is StyleKind.LINK:
            attr |= curses.A_UNDERLINE
        return attr


def _put(win, y: int, x: int, text: str, attr: int = 0) -> None:
    """Write text clipped to the window."""
    height, width = win.getmaxyx()
    if y < 0 or y >= height or x >= width or not text:
        return
    if x < 0:
        text = text[-x:]
        x = 0
    text = text[: width - x]
    try:
        win.addstr(y, x, text, attr)
    except curses.error:
        # Writing the bottom-right cell moves the cursor off-screen.
        pass


class _Frame:
    """Geometry of one drawn frame."""

    def __init__(self, win, hint_chars_enabled: bool) -> None:
        self.height, self.width = win.getmaxyx()
        self.gutter = GUTTER_WIDTH + GUTTER_PADDING if hint_chars_enabled else 0
        self.content_x = self.gutter
        self.content_width = max(self.width - self.gutter, 1)
        self.content_height = max(self.height - STATUS_HEIGHT, 0)
        self.center_y = self.content_height // 2


def _draw_hint(win, y: int, hint: str, palette: _Palette) -> None:
    if hint:
        _put(win, y, 0, hint.rjust(GUTTER_WIDTH)[-GUTTER_WIDTH:], palette.gray(120))


def _draw_context_line(
    win, y: int, frame: _Frame, line: RenderedLine, palette: _Palette, hints: bool,
) -> None:
    if line.is_blank:
        return
    base = palette.gray(line.gray)
    if hints:
        _draw_hint(win, y, line.hint, palette)
    x = frame.content_x + line.padding
    _put(win, y, x, line.prefix, base)
    x += len(line.prefix)
    for span in line.spans:
        _put(win, y, x, span.text, base | palette.style(span.style))
        x += len(span.text)


def _draw_reading(win, state: ReaderState, frame: _Frame, palette: _Palette) -> None:
    timed = state.current_token()
    options = state.options
    if timed is None:
        _put(win, frame.center_y, frame.content_x + 2, "(empty document)", palette.gray(110))
        return

    before_height = max(frame.center_y - 1, 0)
    after_height = max(frame.content_height - (frame.center_y + 2), 0)

    lines = compute_lines(state.tokens, state.position, frame.content_width, options.context_width)
    before, after = compose_context(
        lines, state.position, frame.content_width,
        before_height, after_height, show_hints=options.hint_chars,
    )

    top = before_height - len(before)
    for i, line in enumerate(before):
        _draw_context_line(win, top + i, frame, line, palette, options.hint_chars)
    for i, line in enumerate(after):
        _draw_context_line(win, frame.center_y + 2 + i, frame, line, palette, options.hint_chars)

    # The word itself, ORP character in the centre column.
    token = timed.token
    orp_x = frame.content_x + frame.content_width // 2
    word_x = orp_x - timed.orp_position
    attr = palette.style(token.style)
    for i, ch in enumerate(token.word):
        ch_attr = palette.orp | attr if i == timed.orp_position else curses.A_BOLD | attr
        _put(win, frame.center_y, word_x + i, ch, ch_attr)

    guide = palette.gray(120)
    width = frame.content_width
    tick = orp_x - frame.content_x
    for y, tick_char in ((frame.center_y - 1, "┬"), (frame.center_y + 1, "┴")):
        if 0 <= y < frame.content_height:
            _put(win, y, frame.content_x, "─" * tick + tick_char + "─" * (width - tick - 1), guide)

    if options.hint_chars:
        _draw_hint(win, frame.center_y, hint_chars(token.block), palette)
        parent = hint_chars(token.parent_context)
        _draw_hint(win, frame.center_y - 1, parent, palette)
        _draw_hint(win, frame.center_y + 1, parent, palette)


def _draw_outline(win, state: ReaderState, frame: _Frame, palette: _Palette) -> None:
    if not state.sections:
        _put(win, frame.center_y, 2, "(no sections)", palette.gray(110))
        return

    selected = state.outline_selection
    for offset in range(-frame.center_y, frame.content_height - frame.center_y):
        index = selected + offset
        if not 0 <= index < len(state.sections):
            continue
        section = state.sections[index]
        title = section.title or "(untitled)"
        padding = calculate_padding(len(title), frame.width, True)
        y = frame.center_y + offset
        if offset == 0:
            _put(win, y, 0, ("#" * section.level).rjust(GUTTER_WIDTH), palette.gray(120))
            _put(win, y, padding, title, curses.A_BOLD | palette.gray(GRAY_LEVELS[0]))
        else:
            _put(win, y, padding, title, palette.gray(brightness(abs(offset))))


def _draw_status(win, state: ReaderState, frame: _Frame, palette: _Palette) -> None:
    y = frame.height - STATUS_HEIGHT
    if y < 0:
        return
    title = state.current_section_title() or "Document"
    percent = round(state.progress() * 100)
    _put(win, y, 0, "> ")
    _put(win, y, 2, title, palette.accent)
    _put(win, y, 2 + len(title), f" {percent:>3}%")

    indicator = "||" if state.paused else ">"
    label = f"  {state.wpm} WPM  {indicator}"
    filled = int(frame.width * state.progress())
    bar = label.ljust(frame.width)
    _put(win, y + 1, 0, bar[:filled], curses.A_REVERSE)
    _put(win, y + 1, filled, bar[filled:])


def _draw_help(win, frame: _Frame, palette: _Palette) -> None:
    box_width = min(50, max(frame.width - 4, 0))
    box_height = min(len(HELP_LINES) + 2, max(frame.height - 4, 0))
    if box_width < 4 or box_height < 3:
        return
    x = (frame.width - box_width) // 2
    y = (frame.height - box_height) // 2

    border = palette.accent
    _put(win, y, x, "┌" + " Help ".center(box_width - 2, "─") + "┐", border)
    for row in range(1, box_height - 1):
        text = HELP_LINES[row - 1] if row - 1 < len(HELP_LINES) else ""
        _put(win, y + row, x, "│" + " " + text.ljust(box_width - 3) + "│", border if row == 1 else 0)
    _put(win, y + box_height - 1, x, "└" + "─" * (box_width - 2) + "┘", border)


def draw(win, state: ReaderState, palette: _Palette) -> None:
    """Draw one complete frame."""
    win.erase()
    frame = _Frame(win, state.options.hint_chars)
    if state.view_mode is ViewMode.OUTLINE:
        _draw_outline(win, state, frame, palette)
    else:
        _draw_reading(win, state, frame, palette)
    _draw_status(win, state, frame, palette)
    if state.show_help:
        _draw_help(win, frame, palette)
    win.refresh()


def _loop(win, state: ReaderState, timings: List[WordTiming]) -> None:
    try:
        curses.curs_set(0)
    except curses.error:
        logger.debug("Terminal cannot hide the cursor")
    curses.raw()
    win.keypad(True)
    palette = _Palette(state.options.styling)

    last_advance = time.monotonic()
    while True:
        draw(win, state, palette)

        duration_ms = state.current_duration_ms()
        reading = not state.paused and state.view_mode is ViewMode.READING
        elapsed_ms = (time.monotonic() - last_advance) * 1000
        if reading:
            win.timeout(max(int(duration_ms - elapsed_ms), 0))
        else:
            win.timeout(IDLE_TIMEOUT_MS)

        code = win.getch()
        if code != -1:
            key = translate_key(code)
            if key is not None and not state.handle_key(key):
                return
            if not reading:
                # Time spent paused does not count towards the word.
                last_advance = time.monotonic()

        reading = not state.paused and state.view_mode is ViewMode.READING
        if not reading:
            continue
        if (time.monotonic() - last_advance) * 1000 < duration_ms:
            continue

        timed = state.current_token()
        if timed is not None:
            timings.append(WordTiming(state.position, timed.token.word, duration_ms))
        if state.at_end:
            state.paused = True
        else:
            state.advance()
        last_advance = time.monotonic()


def run(state: ReaderState) -> List[WordTiming]:
    """Run the interactive reader until the user quits.

    Returns:
        The words shown, in order, with the duration each was displayed.
    """
    timings: List[WordTiming] = []
    logger.info("Starting reader: %d words at %d WPM", len(state.tokens), state.wpm)
    try:
        curses.wrapper(_loop, state, timings)
    except KeyboardInterrupt:
        logger.info("Reader interrupted")
    logger.info("Reader closed after %d words", len(timings))
    return timings

"""Configuration constants, reader options, and .env loading.

WHY: Centralizes every tunable value (reading speed bounds, context
width, supported file types) so it is easy to find, update and override.
Defaults are plain module constants, not buried in the UI loop.

HOW: python-dotenv loads the .env file on import. Environment variables
override the built-in defaults; CLI flags override both. ReaderOptions
bundles the per-session settings the reader needs.

RULES:
- WPM is always clamped to [WPM_MIN, WPM_MAX]
- RSVP_READER_WPM / RSVP_READER_CONTEXT_WIDTH that are not integers fall
  back to the defaults (a malformed .env must not block reading)
- RSVP_READER_ARGS is split like a shell command line and prepended to
  argv, so explicit CLI flags still win
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env from the working directory
load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Reading speed
# ---------------------------------------------------------------------------

DEFAULT_WPM = 300
WPM_MIN = 100
WPM_MAX = 800
WPM_STEP = 25

NAVIGATION_STEP = 10
"""Words moved by a single rewind or skip."""

# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

DEFAULT_CONTEXT_WIDTH = 80
"""Maximum context line width, so wide terminals do not reflow the text."""

GUTTER_WIDTH = 4

# ---------------------------------------------------------------------------
# Input formats
# ---------------------------------------------------------------------------

SUPPORTED_EXTENSIONS: set[str] = {".md", ".markdown", ".epub"}
"""Document file extensions the reader accepts (lowercase, with dot)."""

ENV_ARGS_VAR = "RSVP_READER_ARGS"


def clamp_wpm(wpm: int) -> int:
    """Snap to the nearest WPM_STEP multiple inside [WPM_MIN, WPM_MAX].

    Examples:
        310  → 300
        313  → 325
        5000 → 800
    """
    snapped = (int(wpm) + WPM_STEP // 2) // WPM_STEP * WPM_STEP
    return max(WPM_MIN, min(WPM_MAX, snapped))


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default


def default_wpm() -> int:
    return clamp_wpm(_int_from_env("RSVP_READER_WPM", DEFAULT_WPM))


def default_context_width() -> int:
    return max(_int_from_env("RSVP_READER_CONTEXT_WIDTH", DEFAULT_CONTEXT_WIDTH), 1)


def env_args() -> list[str]:
    """Extra CLI arguments from RSVP_READER_ARGS (empty when unset)."""
    return shlex.split(os.getenv(ENV_ARGS_VAR, ""))


@dataclass
class ReaderOptions:
    """Per-session reader settings.

    Attributes:
        wpm: Starting words per minute (clamped on construction).
        context_width: Maximum context line width in characters.
        hint_chars: Show the block hint gutter.
        styling: Render bold/italic/code/link styling.
    """

    wpm: int = DEFAULT_WPM
    context_width: int = DEFAULT_CONTEXT_WIDTH
    hint_chars: bool = True
    styling: bool = True

    def __post_init__(self) -> None:
        self.wpm = clamp_wpm(self.wpm)
        self.context_width = max(int(self.context_width), 1)

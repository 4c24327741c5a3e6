"""Intermediate representation dataclasses for tokenized documents.

WHY: The parsed document tree is only useful to the reader once it has
been flattened into an ordered sequence of words. Each word needs to
carry its inline style, its enclosing structural block, and the signals
the timing model needs, and the layout engine and exporters all need
the same view of it. The IR is that single, well-typed form.

HOW: The dataclasses form a small hierarchy:
  TokenStyle   — inline style variant (Normal, Bold, Italic, ...)
  BlockContext — structural block variant (Paragraph, ListItem(depth), ...)
  TimingHint   — precomputed additive timing modifiers
  Token        — one word with style, block and timing hint
  TimedToken   — a Token plus its duration and ORP highlight index
  Section      — one heading's half-open span over the token stream
  ParsedDocument — tokens + sections, the tokenizer's output

RULES:
- Variants with payloads are frozen dataclasses keyed by a kind enum;
  they compare by value (Quote(1) == Quote(1))
- Token.word is never empty; construction raises ValueError
- Tokens, hints and timed tokens are immutable after creation
- Section.token_end is backfilled exactly once, after the walk
- All lengths and indexes count code points, not bytes
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional


class StyleKind(str, enum.Enum):
    NORMAL = "normal"
    BOLD = "bold"
    ITALIC = "italic"
    BOLD_ITALIC = "bold_italic"
    CODE = "code"
    LINK = "link"


class BlockKind(str, enum.Enum):
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"
    QUOTE = "quote"
    CALLOUT = "callout"
    HEADING = "heading"
    TABLE_CELL = "table_cell"


@dataclass(frozen=True)
class TokenStyle:
    """Inline style of a word.

    RULES:
    - url is set only for LINK
    - Use the constructors (TokenStyle.bold(), TokenStyle.link(url), ...)
      rather than building instances by hand
    """

    kind: StyleKind = StyleKind.NORMAL
    url: Optional[str] = None

    @classmethod
    def normal(cls) -> TokenStyle:
        return cls(StyleKind.NORMAL)

    @classmethod
    def bold(cls) -> TokenStyle:
        return cls(StyleKind.BOLD)

    @classmethod
    def italic(cls) -> TokenStyle:
        return cls(StyleKind.ITALIC)

    @classmethod
    def bold_italic(cls) -> TokenStyle:
        return cls(StyleKind.BOLD_ITALIC)

    @classmethod
    def code(cls) -> TokenStyle:
        return cls(StyleKind.CODE)

    @classmethod
    def link(cls, url: str) -> TokenStyle:
        return cls(StyleKind.LINK, url)

    @property
    def is_bold(self) -> bool:
        return self.kind in (StyleKind.BOLD, StyleKind.BOLD_ITALIC)

    @property
    def is_italic(self) -> bool:
        return self.kind in (StyleKind.ITALIC, StyleKind.BOLD_ITALIC)


@dataclass(frozen=True)
class BlockContext:
    """Structural block enclosing a word.

    WHY: The block decides layout grouping, the prefix glyph, the gutter
    hint and centering eligibility. Its payload (depth, level, row) is
    part of its identity: two consecutive table rows are different blocks.

    RULES:
    - level holds the list/quote depth, heading level or table row
    - callout holds the lowercased callout kind, only for CALLOUT
    - PARAGRAPH carries level 0 and no callout
    """

    kind: BlockKind = BlockKind.PARAGRAPH
    level: int = 0
    callout: Optional[str] = None

    @classmethod
    def paragraph(cls) -> BlockContext:
        return cls(BlockKind.PARAGRAPH)

    @classmethod
    def list_item(cls, depth: int) -> BlockContext:
        return cls(BlockKind.LIST_ITEM, depth)

    @classmethod
    def quote(cls, depth: int) -> BlockContext:
        return cls(BlockKind.QUOTE, depth)

    @classmethod
    def callout_block(cls, kind: str) -> BlockContext:
        return cls(BlockKind.CALLOUT, 0, kind)

    @classmethod
    def heading(cls, level: int) -> BlockContext:
        return cls(BlockKind.HEADING, level)

    @classmethod
    def table_cell(cls, row: int) -> BlockContext:
        return cls(BlockKind.TABLE_CELL, row)

    @property
    def table_row(self) -> Optional[int]:
        """Row number for table cells, None for every other block."""
        if self.kind is BlockKind.TABLE_CELL:
            return self.level
        return None


@dataclass(frozen=True)
class TimingHint:
    """Additive timing modifiers computed once per token.

    RULES:
    - All modifiers are milliseconds at the 300 WPM calibration baseline
    - is_block_start: first token since the most recent block entry
    - is_cell_start / table_column: set only for table cell tokens
    """

    word_length_modifier: int = 0
    punctuation_modifier: int = 0
    structure_modifier: int = 0
    is_cell_start: bool = False
    table_column: Optional[int] = None
    is_block_start: bool = False

    @property
    def total(self) -> int:
        return self.word_length_modifier + self.punctuation_modifier + self.structure_modifier


@dataclass(frozen=True)
class Token:
    """One word unit emitted by the tokenizer.

    RULES:
    - word may keep trailing punctuation or a trailing hyphen ("well-")
    - parent_context is a coarser hint for the gutter only; layout ignores it
    """

    word: str
    style: TokenStyle = field(default_factory=TokenStyle)
    block: BlockContext = field(default_factory=BlockContext)
    timing_hint: TimingHint = field(default_factory=TimingHint)
    parent_context: Optional[BlockContext] = None

    def __post_init__(self) -> None:
        if not self.word:
            raise ValueError("Token.word must not be empty")


@dataclass(frozen=True)
class TimedToken:
    """A token with its display duration and ORP highlight index."""

    token: Token
    duration_ms: int
    orp_position: int


@dataclass
class Section:
    """One heading's half-open span [token_start, token_end) over the stream."""

    title: str
    level: int
    token_start: int
    token_end: int = 0


@dataclass
class ParsedDocument:
    """Output of a tokenization pass: ordered tokens plus heading sections."""

    tokens: List[Token] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)

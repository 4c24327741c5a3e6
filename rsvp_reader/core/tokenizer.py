"""Document walker: parsed markdown tree → annotated word tokens + sections.

WHY: The markdown parser produces a tree of typed nodes; the reader needs
a flat, ordered sequence of words where each word still knows what it
was in the tree: bold or plain, heading or list item, first word of a
block or last cell of a table row. This module is the bridge between
the parsed tree and the timed token stream.

HOW: A pre-order recursive walk over markdown-it-py ``SyntaxTreeNode``
objects. Entering a node may push onto five independent dimensions of
a _ParserContext (style stack, block stack, quote depth, list depth,
skip depth) and returns an _ExitActions record; the matching exit undoes
exactly what the entry did. Text nodes are segmented into words and each
word becomes one Token carrying the current style, block and a
TimingHint. A second pass backfills each Section's token_end.

RULES:
- fence / code_block / image: skip depth +1, all descendant text dropped;
  the only early return (style and block stacks untouched)
- heading: push Heading(level), open a Section at the current length
- paragraph: push Paragraph unless inside a callout, list item or quote;
  the container block stands in (the "new block" flag is still set);
  hidden (tight-list) paragraphs are transparent
- blockquote: quote depth +1; "[!kind]" in the first text run of the
  first paragraph makes it Callout(kind), else Quote(depth); the marker
  itself is not emitted
- lists: depth +1 on the list, ListItem(depth) on the item
- tables: row/cell counters; each cell pushes TableCell(row)
- strong + em combine into BoldItalic in either order, and BoldItalic
  stays dominant under further nesting
- inline code is emitted as one verbatim word, never segmented
- is_paragraph_end: only the last word of a text run, and only if it ends
  in ". ! ?" (runs split by inline styling are not joined)
- An html node carrying a "<parsererror" marker aborts with
  DocumentParseError, no partial output
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from markdown_it.tree import SyntaxTreeNode

from rsvp_reader.core.errors import DocumentParseError
from rsvp_reader.core.ir import (
    BlockContext,
    BlockKind,
    ParsedDocument,
    Section,
    StyleKind,
    Token,
    TokenStyle,
)
from rsvp_reader.core.segmenter import segment
from rsvp_reader.core.timing import ends_sentence, generate_hint

logger = logging.getLogger(__name__)

# Nodes whose whole subtree is suppressed.
_SKIPPED_NODES = frozenset({"fence", "code_block", "image"})

_HTML_NODES = frozenset({"html_block", "html_inline"})
_PARSER_ERROR_MARKER = "<parsererror"

_LIST_NODES = frozenset({"bullet_list", "ordered_list"})
_CELL_NODES = frozenset({"th", "td"})

# Blocks that absorb a directly nested paragraph instead of stacking one.
_CONTAINER_BLOCKS = frozenset({BlockKind.LIST_ITEM, BlockKind.QUOTE, BlockKind.CALLOUT})

# "[!note]", "[!Warning]+", "[! tip ]" at the start of a callout's first line.
_CALLOUT_RE = re.compile(r"^\s*\[!([^\]]*)\][+-]?")


@dataclass
class _ParserContext:
    """Mutable walk state, owned by a single tokenization pass."""

    style_stack: List[TokenStyle] = field(default_factory=lambda: [TokenStyle.normal()])
    block_stack: List[BlockContext] = field(default_factory=lambda: [BlockContext.paragraph()])
    quote_depth: int = 0
    list_depth: int = 0
    skip_depth: int = 0
    new_block_entered: bool = False
    table_row: int = 0
    table_cell_index: int = 0
    table_cell_count: int = 0
    table_column: Optional[int] = None
    is_last_table_cell: bool = False
    cell_start_pending: bool = False
    in_callout: bool = False
    strip_callout_marker: bool = False
    in_inline_code: bool = False

    @property
    def current_style(self) -> TokenStyle:
        return self.style_stack[-1]

    @property
    def current_block(self) -> BlockContext:
        return self.block_stack[-1]

    @property
    def parent_block(self) -> Optional[BlockContext]:
        """Block beneath the top of the stack, ignoring the root sentinel."""
        if len(self.block_stack) > 2:
            return self.block_stack[-2]
        return None

    @property
    def should_skip(self) -> bool:
        return self.skip_depth > 0

    def push_style(self, style: TokenStyle) -> None:
        current = self.current_style.kind
        pair = {current, style.kind}
        if pair == {StyleKind.BOLD, StyleKind.ITALIC} or current is StyleKind.BOLD_ITALIC:
            style = TokenStyle.bold_italic()
        self.style_stack.append(style)

    def pop_style(self) -> None:
        if len(self.style_stack) > 1:
            self.style_stack.pop()

    def push_block(self, block: BlockContext) -> None:
        self.block_stack.append(block)
        self.new_block_entered = True

    def pop_block(self) -> None:
        if len(self.block_stack) > 1:
            self.block_stack.pop()


@dataclass
class _ExitActions:
    """What entering a node changed, so exiting can undo exactly that."""

    pop_style: bool = False
    pop_block: bool = False
    pop_skip: bool = False
    pop_list_depth: bool = False
    pop_quote_depth: bool = False
    restore_callout: Optional[bool] = None
    restore_inline_code: Optional[bool] = None
    leave_cell: bool = False


def collect_text(node: SyntaxTreeNode) -> str:
    """Concatenate all descendant text of a node (used for heading titles).

    Soft and hard line breaks become single spaces.
    """
    if node.type in ("text", "code_inline"):
        return node.content
    if node.type in ("softbreak", "hardbreak"):
        return " "
    return "".join(collect_text(child) for child in node.children)


def detect_callout_type(text: str) -> Optional[str]:
    """Return the lowercased callout kind from a "[!kind]" prefix, or None."""
    match = _CALLOUT_RE.match(text)
    if not match:
        return None
    kind = match.group(1).strip().lower()
    return kind or None


def _first_text_run(blockquote: SyntaxTreeNode) -> Optional[str]:
    """Leading text run of the blockquote's first paragraph, if any.

    Only a run that opens the paragraph counts; "**x** [!note]" is not a
    callout.
    """
    for child in blockquote.children:
        if child.type != "paragraph":
            continue
        for inline in child.children:
            if inline.children and inline.children[0].type == "text":
                return inline.children[0].content
        return None
    return None


def _section_location(sections: List[Section]) -> Optional[str]:
    if sections:
        return f"section '{sections[-1].title}'"
    return None


def tokenize(root: SyntaxTreeNode) -> ParsedDocument:
    """Walk a parsed markdown tree and produce tokens and sections.

    Args:
        root: The root ``SyntaxTreeNode`` of a markdown-it-py parse.

    Returns:
        ParsedDocument with tokens in reading order and sections whose
        token_end values chain to the next section (the last one ends at
        the total token count).

    Raises:
        DocumentParseError: If the tree carries an embedded parser-error
            marker. Nothing is returned in that case.
    """
    ctx = _ParserContext()
    tokens: List[Token] = []
    sections: List[Section] = []

    _walk(root, ctx, tokens, sections)

    for i, section in enumerate(sections):
        if i + 1 < len(sections):
            section.token_end = sections[i + 1].token_start
        else:
            section.token_end = len(tokens)

    logger.debug("Tokenized %d words in %d sections", len(tokens), len(sections))
    return ParsedDocument(tokens=tokens, sections=sections)


def _walk(
    node: SyntaxTreeNode,
    ctx: _ParserContext,
    tokens: List[Token],
    sections: List[Section],
) -> None:
    actions = _enter_node(node, ctx, tokens, sections)

    for child in node.children:
        _walk(child, ctx, tokens, sections)

    _exit_node(actions, ctx)


def _exit_node(actions: _ExitActions, ctx: _ParserContext) -> None:
    if actions.pop_style:
        ctx.pop_style()
    if actions.restore_inline_code is not None:
        ctx.in_inline_code = actions.restore_inline_code
    if actions.pop_block:
        ctx.pop_block()
    if actions.pop_skip:
        ctx.skip_depth = max(ctx.skip_depth - 1, 0)
    if actions.pop_list_depth:
        ctx.list_depth = max(ctx.list_depth - 1, 0)
    if actions.pop_quote_depth:
        ctx.quote_depth = max(ctx.quote_depth - 1, 0)
    if actions.restore_callout is not None:
        ctx.in_callout = actions.restore_callout
        ctx.strip_callout_marker = False
    if actions.leave_cell:
        ctx.table_column = None
        ctx.is_last_table_cell = False
        ctx.cell_start_pending = False


def _enter_node(
    node: SyntaxTreeNode,
    ctx: _ParserContext,
    tokens: List[Token],
    sections: List[Section],
) -> _ExitActions:
    actions = _ExitActions()
    kind = node.type

    if kind in _SKIPPED_NODES:
        ctx.skip_depth += 1
        actions.pop_skip = True
        return actions

    if kind in _HTML_NODES:
        if _PARSER_ERROR_MARKER in node.content:
            raise DocumentParseError(
                "embedded parser error in document markup",
                location=_section_location(sections),
            )
        return actions

    # Block-level elements
    if kind == "heading":
        level = int(node.tag[1:])
        ctx.push_block(BlockContext.heading(level))
        actions.pop_block = True
        sections.append(Section(
            title=collect_text(node).strip(),
            level=level,
            token_start=len(tokens),
        ))
    elif kind == "paragraph":
        if node.hidden:
            pass
        elif ctx.in_callout or ctx.current_block.kind in _CONTAINER_BLOCKS:
            ctx.new_block_entered = True
        else:
            ctx.push_block(BlockContext.paragraph())
            actions.pop_block = True
    elif kind == "blockquote":
        ctx.quote_depth += 1
        actions.pop_quote_depth = True
        actions.restore_callout = ctx.in_callout

        first_run = _first_text_run(node)
        callout = detect_callout_type(first_run) if first_run is not None else None
        if callout:
            ctx.in_callout = True
            ctx.strip_callout_marker = True
            ctx.push_block(BlockContext.callout_block(callout))
        else:
            ctx.in_callout = False
            ctx.push_block(BlockContext.quote(ctx.quote_depth))
        actions.pop_block = True
    elif kind in _LIST_NODES:
        ctx.list_depth += 1
        actions.pop_list_depth = True
    elif kind == "list_item":
        ctx.push_block(BlockContext.list_item(ctx.list_depth))
        actions.pop_block = True
    elif kind == "table":
        ctx.table_row = 0
        ctx.table_cell_index = 0
        ctx.table_cell_count = 0
        ctx.is_last_table_cell = False
    elif kind == "tr":
        ctx.table_row += 1
        ctx.table_cell_index = 0
        ctx.table_cell_count = sum(1 for c in node.children if c.type in _CELL_NODES)
    elif kind in _CELL_NODES:
        ctx.is_last_table_cell = ctx.table_cell_index == ctx.table_cell_count - 1
        ctx.push_block(BlockContext.table_cell(ctx.table_row))
        actions.pop_block = True
        actions.leave_cell = True
        ctx.table_column = ctx.table_cell_index
        ctx.cell_start_pending = True
        ctx.table_cell_index += 1

    # Inline styling
    if kind == "strong":
        ctx.push_style(TokenStyle.bold())
        actions.pop_style = True
    elif kind == "em":
        ctx.push_style(TokenStyle.italic())
        actions.pop_style = True
    elif kind == "link":
        ctx.push_style(TokenStyle.link(str(node.attrs.get("href", ""))))
        actions.pop_style = True
    elif kind == "code_inline":
        actions.restore_inline_code = ctx.in_inline_code
        ctx.in_inline_code = True
        ctx.push_style(TokenStyle.code())
        actions.pop_style = True
        _emit_text(node.content, ctx, tokens)
    elif kind == "text":
        _emit_text(node.content, ctx, tokens)

    return actions


def _emit_text(text: str, ctx: _ParserContext, tokens: List[Token]) -> None:
    """Turn one text run into tokens under the current context."""
    if ctx.should_skip:
        return

    if ctx.strip_callout_marker:
        ctx.strip_callout_marker = False
        text = _CALLOUT_RE.sub("", text, count=1)

    if ctx.in_inline_code:
        words = [text] if text.strip() else []
    else:
        words = segment(text)

    in_cell = ctx.current_block.kind is BlockKind.TABLE_CELL
    last_index = len(words) - 1

    for i, word in enumerate(words):
        is_last_word = i == last_index
        is_new_block = ctx.new_block_entered or not tokens
        is_cell_start = in_cell and ctx.cell_start_pending

        hint = generate_hint(
            word,
            is_paragraph_end=is_last_word and ends_sentence(word),
            is_new_block=is_new_block,
            is_last_table_cell=in_cell and ctx.is_last_table_cell and is_last_word,
            is_cell_start=is_cell_start,
            table_column=ctx.table_column if in_cell else None,
        )

        tokens.append(Token(
            word=word,
            style=ctx.current_style,
            block=ctx.current_block,
            timing_hint=hint,
            parent_context=ctx.parent_block,
        ))

        ctx.new_block_entered = False
        ctx.cell_start_pending = False

"""RSVP Reader — word-at-a-time terminal reading of markdown and EPUB.

WHY: Rapid serial visual presentation (one word at a time, in place) lets
a reader move through a document at a fixed, adjustable pace. Plain RSVP
loses all document structure, so this package keeps it: every word knows
its style, its enclosing block, and how long it deserves on screen, and
the surrounding lines stay visible as faded context.

HOW: Three-stage pipeline: parse (markdown-it-py / EbookLib front ends),
tokenize (document walker → annotated word tokens + sections), present
(timed token stream → windowed layout → curses frontend or exporters).
Each stage is independently testable.

RULES:
- The timed token stream and section list are the stable contract
  between tokenization and presentation; nothing mutates them afterwards
- Adding an input format = one new parser module, no core changes
- Adding an output format = one new exporter module, no core changes
"""

__version__ = "0.1.0"

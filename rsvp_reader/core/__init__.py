"""Core tokenization and intermediate representation modules.

WHY: The core package contains the stable heart of the reader: the IR
dataclasses, the word segmenter, the timing and ORP models, and the
document walker that turns a parsed tree into timed tokens. These are
consumed by the layout engine, the terminal frontend and all exporters.

HOW: ir.py defines the data structures, segmenter.py / timing.py / orp.py
are pure leaf functions, tokenizer.py walks the parsed tree, stream.py
zips tokens with durations and ORP positions.

RULES:
- IR dataclasses are the contract; change with care
- Tokenization is format-agnostic: parsers produce the tree, the core
  never reads files
- Timing, ORP and segmentation are total: no input raises
"""

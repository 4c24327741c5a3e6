"""Timed-stream JSON exporter.

WHY: The timed token stream is the reader's central data structure. A
faithful JSON dump of it makes tokenizer and timing behaviour visible:
which block each word landed in, why it got the duration it did, where
the ORP highlight falls.

HOW: Each TimedToken becomes one flat object; sections are listed with
their half-open token ranges. The document is validated with jsonschema
against the bundled timed_stream_schema.json before returning.

RULES:
- One object per token, in stream order, with its stream index
- url only for links; level/callout only where the block carries them
- parent is null when the token has no enclosing structural block
- Validate output against the schema before returning; raise on failure
- Output suffix: "-timed.json"; media type: "application/json"
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import jsonschema

from rsvp_reader import __version__
from rsvp_reader.core.ir import BlockContext, BlockKind, Section, TimedToken
from rsvp_reader.exporters.base import BaseExporter, ExportOutput

_SCHEMA_PATH = Path(__file__).resolve().parent / "timed_stream_schema.json"


def _load_schema() -> dict[str, Any]:
    """Load the timed stream JSON schema bundled with the package."""
    with open(_SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


_CACHED_SCHEMA: dict[str, Any] | None = None


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def _block_to_dict(block: Optional[BlockContext]) -> Optional[Dict[str, Any]]:
    if block is None:
        return None
    data: Dict[str, Any] = {"kind": block.kind.value}
    if block.kind is BlockKind.CALLOUT:
        data["callout"] = block.callout
    elif block.kind is not BlockKind.PARAGRAPH:
        data["level"] = block.level
    return data


def _token_to_dict(index: int, timed: TimedToken) -> Dict[str, Any]:
    token = timed.token
    hint = token.timing_hint
    data: Dict[str, Any] = {
        "index": index,
        "word": token.word,
        "style": token.style.kind.value,
        "block": _block_to_dict(token.block),
        "parent": _block_to_dict(token.parent_context),
        "hint": {
            "word_length": hint.word_length_modifier,
            "punctuation": hint.punctuation_modifier,
            "structure": hint.structure_modifier,
            "is_block_start": hint.is_block_start,
            "is_cell_start": hint.is_cell_start,
            "table_column": hint.table_column,
        },
        "duration_ms": timed.duration_ms,
        "orp": timed.orp_position,
    }
    if token.style.url is not None:
        data["url"] = token.style.url
    return data


def build_document(
    stream: Sequence[TimedToken],
    sections: Sequence[Section],
    source_name: str,
    wpm: int,
) -> Dict[str, Any]:
    """Build the (unvalidated) JSON-ready dict for a timed stream."""
    return {
        "version": __version__,
        "source": source_name,
        "wpm": wpm,
        "total_duration_ms": sum(t.duration_ms for t in stream),
        "sections": [
            {
                "title": s.title,
                "level": s.level,
                "token_start": s.token_start,
                "token_end": s.token_end,
            }
            for s in sections
        ],
        "tokens": [_token_to_dict(i, t) for i, t in enumerate(stream)],
    }


class TimedJsonExporter(BaseExporter):
    """Dump the timed token stream and sections as schema-checked JSON."""

    @property
    def name(self) -> str:
        return "Timed JSON"

    def export(
        self,
        stream: Sequence[TimedToken],
        sections: Sequence[Section],
        source_name: str,
        wpm: int,
    ) -> List[ExportOutput]:
        """Serialize the stream.

        Raises:
            jsonschema.ValidationError: If the generated JSON does not
                conform to the timed stream schema.
        """
        document = build_document(stream, sections, source_name, wpm)
        jsonschema.validate(instance=document, schema=_get_schema())

        content = json.dumps(document, indent=2, ensure_ascii=False)
        return [ExportOutput(suffix="-timed.json", content=content, media_type="application/json")]

"""Exporter registry — pluggable output formats for the timed stream.

WHY: The CLI needs a single lookup to find an exporter by name. A
central dict makes adding a format trivial: create the exporter class,
import it here, add one line.

HOW: EXPORTERS maps string keys to exporter *classes* (not instances).
Callers instantiate as needed: ``exporter = EXPORTERS["timed_json"]()``.

RULES:
- Keys are snake_case identifiers (used by the --export flag)
- Values are BaseExporter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rsvp_reader.exporters.plain_text import PlainTextExporter
from rsvp_reader.exporters.timed_json import TimedJsonExporter

if TYPE_CHECKING:
    from rsvp_reader.exporters.base import BaseExporter

EXPORTERS: dict[str, type[BaseExporter]] = {
    "timed_json": TimedJsonExporter,
    "plain_text": PlainTextExporter,
}

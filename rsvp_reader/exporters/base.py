"""Abstract base exporter and output container.

WHY: A tokenized document is useful outside the interactive reader too:
to inspect timing, to diff tokenizer changes, or to feed another tool.
Every export format consumes the same timed token stream and sections;
this base class keeps the interface identical so the CLI can drive any
exporter generically.

HOW: BaseExporter is an ABC with a ``name`` property and an ``export()``
method. ExportOutput bundles a file suffix with its content and MIME type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``export()``
- ``export()`` returns a list, one item per file written
- ``suffix`` starts with a hyphen, e.g. ``"-timed.json"``
- The caller prepends the source filename stem and writes the file
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence

from rsvp_reader.core.ir import Section, TimedToken


@dataclass
class ExportOutput:
    """One output file produced by an exporter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-timed.json"`` → ``"notes-timed.json"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"application/json"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseExporter(ABC):
    """Abstract base for all exporters.

    To add a new export format:
    1. Create a new file in exporters/
    2. Subclass BaseExporter
    3. Implement export() and name
    4. Register in EXPORTERS dict in exporters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Timed JSON'."""

    @abstractmethod
    def export(
        self,
        stream: Sequence[TimedToken],
        sections: Sequence[Section],
        source_name: str,
        wpm: int,
    ) -> List[ExportOutput]:
        """Convert a timed token stream into one or more output files.

        Args:
            stream: Timed tokens in reading order.
            sections: Heading sections over the stream.
            source_name: Name of the source document (for metadata).
            wpm: The speed the durations were computed at.
        """

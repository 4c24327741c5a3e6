"""Error taxonomy for document loading and tokenization.

WHY: A reading session has exactly two fatal failure modes: the file
cannot be read, or its content cannot be tokenized. Callers (CLI, tests)
need typed exceptions to tell them apart and report them cleanly.

HOW: DocumentError is the common base. DocumentIOError also subclasses
OSError and DocumentParseError also subclasses ValueError, so generic
``except OSError`` / ``except ValueError`` handlers keep working.

RULES:
- Both errors are fatal for the session; there is no retry and no
  partial-document fallback
- Parse error messages name the offending chapter or section when known
"""

from __future__ import annotations


class DocumentError(Exception):
    """Base class for all document loading failures."""


class DocumentIOError(DocumentError, OSError):
    """Raised when a document file is missing or unreadable.

    RULES:
    - path is the file that failed to load
    - The original OSError is chained as __cause__
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class DocumentParseError(DocumentError, ValueError):
    """Raised when document content is malformed and cannot be tokenized.

    RULES:
    - location names the chapter or section, or is None when unknown
    - The message always includes the location when one is given
    """

    def __init__(self, message: str, location: str | None = None) -> None:
        self.location = location
        if location:
            message = f"Failed to parse {location}: {message}"
        super().__init__(message)

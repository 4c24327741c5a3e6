"""Command-line interface for the RSVP reader.

WHY: Users start reading from the terminal: point the tool at a markdown
or EPUB file and it flashes the document one word at a time. The same
entry point also exports (timed JSON, plain text) and splits EPUBs into
per-chapter markdown, so the whole pipeline is reachable from one command.

HOW: argparse parses RSVP_READER_ARGS followed by the real arguments
(later flags win). The file is validated, parsed by the parser registered
for its extension, and turned into a timed token stream. Then one of
three things happens: --export-md writes chapter files, --export runs
exporters and saves their output, otherwise the curses reader runs and a
word-timing report is printed when it closes. Status messages go to
stderr; the timing report goes to stdout.

RULES:
- Positional argument: the document path (.md, .markdown, .epub)
- Missing file, unsupported extension, unknown exporter, --export-md on a
  non-EPUB, and document errors all print "Error: ..." and exit 1
- Output naming: {stem}{suffix}, numeric suffix for conflicts
  (notes-timed-2.json)
- Logging goes to --log-file when given, otherwise WARNING and up to
  stderr; nothing is logged to the screen while curses owns it
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence

from rsvp_reader import __version__
from rsvp_reader.config import (
    SUPPORTED_EXTENSIONS,
    ReaderOptions,
    clamp_wpm,
    default_context_width,
    default_wpm,
    env_args,
)
from rsvp_reader.core.errors import DocumentError
from rsvp_reader.core.stream import build_timed_stream
from rsvp_reader.exporters import EXPORTERS
from rsvp_reader.exporters.base import ExportOutput
from rsvp_reader.parsers import parser_for
from rsvp_reader.parsers.epub import EpubParser

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
SLOWEST_WORDS = 10


def _status(msg: str) -> None:
    """Print a status message to stderr.

    WHY: Status output must not mix with the timing report on stdout.

    RULES:
    - All status messages go to stderr
    - Always flush after writing
    """
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> NoReturn:
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def _configure_logging(log_file: Optional[str], verbose: bool) -> None:
    """Route logging to a file, or keep it to warnings on stderr.

    The curses screen owns the terminal while reading, so INFO/DEBUG
    output only goes to a file.
    """
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=logging.DEBUG if verbose else logging.INFO,
            format=LOG_FORMAT,
        )
    else:
        logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    WHY: Re-running an export must not overwrite earlier output.

    RULES:
    - First attempt: {stem}{suffix} (e.g. notes-timed.json)
    - Conflict: insert a counter before the extension
      (e.g. notes-timed-2.json), starting at 2

    Returns:
        A Path that does not yet exist.
    """
    base_path = output_dir / f"{stem}{suffix}"
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / f"{stem}{suffix_name}-{counter}{suffix_ext}"
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: ExportOutput, stem: str, output_dir: Path) -> Path:
    """Write one exporter output as UTF-8 and return where it went."""
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _parse_export_keys(raw: str) -> List[str]:
    keys = [k.strip() for k in raw.split(",") if k.strip()]
    if not keys:
        _fail(f"No export format given. Available formats: {', '.join(sorted(EXPORTERS))}")
    for key in keys:
        if key not in EXPORTERS:
            _fail(
                f"Unknown format '{key}'. "
                f"Available formats: {', '.join(sorted(EXPORTERS))}"
            )
    return keys


def format_timing_report(timings: Sequence, wpm: int) -> List[str]:
    """Summarize how long words were shown, for tuning the timing model.

    Args:
        timings: WordTiming records (position, word, duration_ms).
        wpm: Speed at the end of the session.

    Returns:
        Report lines: average/max per 10% bucket of position, then the
        slowest words. Empty when nothing was read.
    """
    if not timings:
        return []

    max_pos = max(t.position for t in timings)
    buckets: Dict[int, List[int]] = defaultdict(list)
    for t in timings:
        bucket = t.position * 10 // max_pos if max_pos > 0 else 0
        buckets[bucket].append(t.duration_ms)

    lines = ["", f"Word duration by position (at {wpm} WPM):"]
    for bucket in range(11):
        durations = buckets.get(bucket)
        if not durations:
            continue
        avg = sum(durations) // len(durations)
        lines.append(
            f"  {bucket * 10:>3}%: avg {avg:>4}ms, max {max(durations):>4}ms "
            f"({len(durations)} words)"
        )

    lines.extend(["", "Slowest words:"])
    slowest = sorted(timings, key=lambda t: t.duration_ms, reverse=True)[:SLOWEST_WORDS]
    for t in slowest:
        lines.append(f"  {t.duration_ms:>4}ms: {t.word:20} (pos {t.position})")
    return lines


def _run(args: argparse.Namespace) -> None:
    input_path = Path(args.file).resolve()

    if not input_path.is_file():
        _fail(f"File not found: {input_path}")

    ext = input_path.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        _fail(
            f"Unsupported file type '{ext}'. "
            f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )

    output_dir: Optional[Path] = Path(args.output_dir).resolve() if args.output_dir else None
    if output_dir is not None and not output_dir.is_dir():
        _fail(f"Output directory does not exist: {output_dir}")

    # EPUB → per-chapter markdown, no reading
    if args.export_md:
        if ext != ".epub":
            _fail("--export-md only works with EPUB files")
        try:
            book_dir, count = EpubParser().export_chapters(input_path, output_dir or Path.cwd())
        except DocumentError as e:
            _fail(str(e))
        _status(f"Exported {count} chapters to {book_dir}")
        return

    export_keys = _parse_export_keys(args.export) if args.export else []

    _status(f"Loading {input_path.name}...")
    try:
        document = parser_for(input_path).parse_file(input_path)
    except DocumentError as e:
        _fail(str(e))

    wpm = clamp_wpm(args.wpm)
    stream = build_timed_stream(document.tokens, wpm)
    logger.info("%d words, %d sections", len(stream), len(document.sections))

    if export_keys:
        target_dir = output_dir or input_path.parent
        saved: List[Path] = []
        for key in export_keys:
            exporter = EXPORTERS[key]()
            _status(f"  Running {exporter.name} exporter...")
            for output in exporter.export(stream, document.sections, input_path.name, wpm):
                path = _save_output(output, input_path.stem, target_dir)
                saved.append(path)
                _status(f"  Saved: {path.name}")
        _status(f"Done! Saved {len(saved)} file(s) to {target_dir}")
        return

    if not stream:
        _fail(f"No readable text in {input_path.name}")
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        _fail("The reader needs an interactive terminal (use --export for files)")

    # Imported here so export-only runs never touch curses.
    from rsvp_reader.view.state import ReaderState
    from rsvp_reader.view.terminal import run

    options = ReaderOptions(
        wpm=wpm,
        context_width=args.context_width,
        hint_chars=not args.no_hint_chars,
        styling=not args.no_styling,
    )
    state = ReaderState(stream, document.sections, options)
    timings = run(state)

    for line in format_timing_report(timings, state.wpm):
        print(line)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable: tests can inspect the parser without running the reader.

    RULES:
    - Positional: file (required)
    - Reading: --wpm, --context-width, --no-hint-chars, --no-styling
    - Output: --export-md, --export (comma-separated), --output-dir
    - Diagnostics: --log-file, --verbose
    """
    parser = argparse.ArgumentParser(
        prog="rsvp-reader",
        description="Read markdown and EPUB files one word at a time (RSVP) "
                    "in the terminal.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "file",
        help="Markdown (.md, .markdown) or EPUB (.epub) file to read.",
    )

    parser.add_argument(
        "--wpm",
        type=int,
        default=default_wpm(),
        help="Starting reading speed in words per minute (default: %(default)s).",
    )

    parser.add_argument(
        "--context-width",
        type=int,
        default=default_context_width(),
        help="Maximum width of context lines in characters, so wide "
             "terminals do not reflow the text (default: %(default)s).",
    )

    parser.add_argument(
        "--no-hint-chars",
        action="store_true",
        help="Hide the block hint gutter.",
    )

    parser.add_argument(
        "--no-styling",
        action="store_true",
        help="Disable bold/italic/code/link styling.",
    )

    parser.add_argument(
        "--export-md",
        action="store_true",
        help="Export EPUB chapters to markdown files instead of reading.",
    )

    parser.add_argument(
        "--export",
        default=None,
        metavar="FORMATS",
        help="Comma-separated export formats instead of reading. "
             "Available: {}.".format(", ".join(sorted(EXPORTERS))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for exported files (default: next to the input file; "
             "current directory for --export-md).",
    )

    parser.add_argument(
        "--log-file",
        default=None,
        help="Write log messages to this file.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug detail (with --log-file).",
    )

    return parser


def merge_env_args(argv: Optional[Sequence[str]]) -> List[str]:
    """RSVP_READER_ARGS first, then the real arguments, so the latter win."""
    if argv is None:
        argv = sys.argv[1:]
    return env_args() + list(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(merge_env_args(argv))
    _configure_logging(args.log_file, args.verbose)
    _run(args)


if __name__ == "__main__":
    main()

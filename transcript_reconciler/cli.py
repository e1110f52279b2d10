"""Command-line interface for the transcript reconciler.

WHY: Users need a simple way to put timing and speakers back onto an
edited transcript from the terminal. The CLI wires together the full
pass (free-text ingest, timed-word and diarization ingest, alignment,
interpolation, overlay, tag and separator handling) and the pluggable
formatters behind a single command.

HOW: Uses argparse to accept the edited transcript, the timing and
diarization files, pipeline switches, output format selection and an
output directory. Drives an EditorSession so the run can optionally be
recorded in a JSON version-history file. Status messages go to stderr;
output files are saved next to the transcript (or to --output-dir).

RULES:
- Positional argument: edited transcript text file (UTF-8)
- --timings requires --timing-format (mfa or asr)
- Without --timings, --diarization labels words that already carry
  inline timestamps
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts
  (-transcript-2.txt)
- Status output goes to stderr (not stdout)
- MalformedInput and unreadable state exit with status 1
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from transcript_reconciler.config import (
    ALIGN_CONFIRM_GAP,
    ALIGN_LOOKAHEAD_WINDOW,
    ALIGN_RESYNC_RUN,
    DEFAULT_STATE_PATH,
    LOG_LEVEL,
)
from transcript_reconciler.core.alignment import AlignmentParams, AlignmentReport
from transcript_reconciler.core.diarization import add_speaker_separators
from transcript_reconciler.engine import interpolate, overlay_diarization
from transcript_reconciler.errors import HistoryError, MalformedInput
from transcript_reconciler.formatters import FORMATTERS
from transcript_reconciler.formatters.base import FormatterOutput
from transcript_reconciler.history import HistoryStore, InMemoryHistoryStore, JsonFileHistoryStore
from transcript_reconciler.ingest import INGESTORS
from transcript_reconciler.session import EditorSession


def _status(msg: str) -> None:
    """Print a status message to stderr.

    Status output must not pollute stdout so the CLI can be piped.
    """
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    WHY: Users may run the reconciler repeatedly on the same transcript.
    Overwriting previous output would lose work.

    RULES:
    - First attempt: {stem}{suffix} (e.g. interview-transcript.txt)
    - Conflict: insert a counter before the extension
      (e.g. interview-transcript-2.txt)
    - Counter starts at 2 and increments

    Returns:
        A Path that does not yet exist.
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
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
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(
    output: FormatterOutput,
    stem: str,
    output_dir: Path,
) -> Path:
    """Write one formatter output to a conflict-free path and return it."""
    path = _resolve_output_path(stem, output.suffix, output_dir)

    if isinstance(output.content, bytes):
        path.write_bytes(output.content)
    else:
        path.write_text(output.content, encoding="utf-8")

    return path


def _parse_format_keys(formats: Optional[str]) -> List[str]:
    if not formats:
        return list(FORMATTERS.keys())
    format_keys = [f.strip() for f in formats.split(",") if f.strip()]
    for key in format_keys:
        if key not in FORMATTERS:
            available = ", ".join(sorted(FORMATTERS.keys()))
            _fail("Unknown format '{}'. Available formats: {}".format(key, available))
    return format_keys


def _report_alignment(report: AlignmentReport) -> None:
    if report.no_reference_data:
        _status("  Timing file had no words; transcript left untimed")
        return
    _status("  Matched {}/{} words ({:.0%})".format(
        report.matched, report.matched + report.unmatched, report.match_ratio,
    ))
    if report.discarded_reference:
        _status("  {} reference words had no counterpart (deleted text)".format(
            report.discarded_reference,
        ))
    if report.window_exceeded or report.rejected_skips:
        _status("  {} words matched too far ahead and were left for interpolation".format(
            report.window_exceeded + report.rejected_skips,
        ))


def _run(args: argparse.Namespace) -> None:
    """Execute the reconciliation pass described by the parsed arguments."""
    input_path = Path(args.transcript).resolve()
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))

    if args.timings and not args.timing_format:
        _fail("--timings requires --timing-format ({})".format(", ".join(sorted(INGESTORS))))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))

    format_keys = _parse_format_keys(args.formats)

    try:
        params = AlignmentParams(
            lookahead_window=args.window,
            confirm_gap=args.confirm_gap,
            resync_run=args.resync_run,
        )
    except ValueError as e:
        _fail(str(e))

    store: HistoryStore = JsonFileHistoryStore(args.state) if args.state else InMemoryHistoryStore()

    try:
        session = EditorSession(
            store=store,
            params=params,
            insert_separators=args.separators,
            interpolate_gaps=args.interpolate,
        )

        _status("Reading transcript {}...".format(input_path.name))
        version = session.load_formatted_text(input_path.read_text(encoding="utf-8"))
        _status("  {} words".format(len(version.words)))

        if args.diarization:
            _status("Reading diarization {}...".format(args.diarization))
            segments = session.load_diarization(Path(args.diarization).read_bytes())
            _status("  {} segments, {} speakers".format(len(segments), len(session.speaker_map)))

        if args.timings:
            _status("Reading {} timings {}...".format(args.timing_format, args.timings))
            reference = session.load_timed_words(Path(args.timings).read_bytes(), args.timing_format)
            _status("  {} timed words".format(len(reference)))

            _status("Applying timestamps...")
            session.apply_timestamps(args.timing_format)
            _report_alignment(session.last_report)
        elif session.segments:
            _status("Applying diarization to inline timestamps...")
            words = session.words
            if args.interpolate:
                words = interpolate(words)
            words = overlay_diarization(words, session.segments, session.speaker_map)
            if args.separators:
                words = add_speaker_separators(words)
            session.save_words(words, "Diarization Applied")
    except (MalformedInput, HistoryError, ValueError) as e:
        _fail(str(e))
    except OSError as e:
        _fail("Cannot read input: {}".format(e))

    stem = input_path.stem
    current = session.current

    _status("Formatting output...")
    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("  Running {} formatter...".format(formatter.name))
        for output in formatter.format(current):
            saved_path = _save_output(output, stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))
    if args.state:
        _status("  History: {} ({} versions)".format(args.state, len(session.history)))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Kept separate from main() so tests can inspect the parser without
    running the pipeline.
    """
    parser = argparse.ArgumentParser(
        prog="transcript_reconciler",
        description="Restore word timing and speaker labels on an edited transcript "
                    "from forced-alignment/ASR and diarization output.",
    )

    parser.add_argument(
        "transcript",
        help="Path to the edited transcript text file.",
    )

    parser.add_argument(
        "--timings",
        default=None,
        help="Timed-word JSON from a forced aligner or ASR engine.",
    )

    parser.add_argument(
        "--timing-format",
        choices=sorted(INGESTORS.keys()),
        default=None,
        help="Format of the --timings file.",
    )

    parser.add_argument(
        "--diarization",
        default=None,
        help="Diarization JSON (list of {start, end, speaker}).",
    )

    parser.add_argument(
        "--interpolate",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Estimate times for words the aligner could not match (default: %(default)s).",
    )

    parser.add_argument(
        "--separators",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Insert separator words between speaker turns (default: %(default)s).",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as transcript).",
    )

    parser.add_argument(
        "--state",
        nargs="?",
        const=DEFAULT_STATE_PATH,
        default=None,
        help="Record the version history in a JSON file "
             "(default file when given without a value: %(const)s).",
    )

    parser.add_argument(
        "--window",
        type=int,
        default=ALIGN_LOOKAHEAD_WINDOW,
        help="Alignment look-ahead window in reference words (default: %(default)s).",
    )

    parser.add_argument(
        "--confirm-gap",
        type=int,
        default=ALIGN_CONFIRM_GAP,
        help="Skips longer than this must be confirmed by the next word; 0 disables "
             "(default: %(default)s).",
    )

    parser.add_argument(
        "--resync-run",
        type=int,
        default=ALIGN_RESYNC_RUN,
        help="Following words that must match in order to jump past the window; 0 disables "
             "(default: %(default)s).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m transcript_reconciler`` and the console script.

    argv=None means use sys.argv; explicit argv is for testing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    _run(args)


if __name__ == "__main__":
    main()

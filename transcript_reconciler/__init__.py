"""Transcript Reconciler: keep word timing alive through free-text edits.

WHY: Forced aligners, ASR engines and diarization tools each emit their
own timed-word or speaker-segment JSON, while editors want to fix a
transcript as plain text. Every edit used to throw the timing away. This
package reconciles an edited word sequence against timed reference data
so timestamps and speaker attribution survive arbitrary edits.

HOW: Four-stage pipeline: ingest (tool-specific parsers into the core
IR), reconcile (tag stripping, alignment, interpolation, diarization
overlay, tag reconstruction), version (immutable snapshots with undo/redo)
and format (pluggable output formatters). Each stage is independently
testable.

RULES:
- All stages exchange the same Word IR (core/ir.py)
- Engine functions are pure; only EditorSession holds state
- Adding an import format = one new ingestor module plus a schema file
"""

__version__ = "0.1.0"

"""Exception taxonomy for the reconciler.

WHY: Callers need to tell "your import file is broken" apart from "you
asked for an alignment while one is running" without string matching.

RULES:
- MalformedInput is raised only by ingestors; existing state is untouched
- AlignmentPending is a precondition failure, never a queued retry
- Alignment, interpolation and overlay never raise on well-typed input;
  empty reference data and look-ahead misses are reported through
  AlignmentReport and the log instead
"""

from __future__ import annotations


class TranscriptError(Exception):
    """Base class for all reconciler errors."""


class MalformedInput(TranscriptError, ValueError):
    """A structurally invalid import (bad JSON, missing or non-numeric times, bad durations)."""


class AlignmentPending(TranscriptError, RuntimeError):
    """An alignment is already running against this session."""


class HistoryError(TranscriptError):
    """Persisted version history could not be read back."""

"""Core IR and reconciliation algorithms.

WHY: The core package is the stable heart of the reconciler: the IR
dataclasses and the pure algorithms that carry timing across edits.
Everything else (ingestors, session, formatters, CLI) is plumbing
around it.

HOW: ir.py defines the data structures; timestamps.py the timestamp
codec; tags.py the inline tag stripper/reconstructor; alignment.py the
edited-vs-reference matcher; interpolate.py gap filling; diarization.py
speaker overlay and paragraph segmentation; speakers.py label edits.

RULES:
- IR dataclasses are the contract; change with care
- Every function here is a pure transformation over its inputs
- No I/O and no format-specific logic in this package
"""

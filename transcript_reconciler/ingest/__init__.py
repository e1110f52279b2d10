"""Registry of timed-word import formats.

WHY: The session, CLI and engine need a single lookup to find the right
timed-word ingestor by format name. A central dict makes adding a format
trivial: write the ingestor and schema, import it here, add one line.

HOW: INGESTORS maps format keys to ingestor *classes* (not instances).
Callers instantiate as needed: ``INGESTORS["mfa"]().ingest(data)``.

RULES:
- Keys are the format names accepted by ingest_timed_words() and the CLI
- Values are BaseTimedWordIngestor subclasses
- Diarization and free text have their own entry points; they do not
  produce TimedWords and are not registered here
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from transcript_reconciler.ingest.asr import AsrIngestor
from transcript_reconciler.ingest.mfa import MfaIngestor

if TYPE_CHECKING:
    from transcript_reconciler.ingest.base import BaseTimedWordIngestor

INGESTORS: dict[str, type[BaseTimedWordIngestor]] = {
    "mfa": MfaIngestor,
    "asr": AsrIngestor,
}

"""Forced-alignment (MFA-style) word export ingestor.

WHY: Montreal Forced Aligner and similar tools produce the most accurate
word timing available, as a flat list of word intervals. Silence and
noise intervals come through as pseudo-words that must not reach the
transcript.

HOW: Accepts a top-level array of {word, start_time, end_time} objects,
or the same array wrapped as {"words": [...]}. Interval labels listed in
config.MFA_SILENCE_TOKENS are dropped.

RULES:
- Times are float seconds
- Silence labels ("", "<eps>", "sil", "sp", "spn") are dropped,
  compared case-insensitively
- Word text is kept as exported (casing affects display_text)
"""

from __future__ import annotations

from typing import Any, Iterable

from transcript_reconciler.config import MFA_SILENCE_TOKENS
from transcript_reconciler.ingest.base import BaseTimedWordIngestor, RawTimedToken


class MfaIngestor(BaseTimedWordIngestor):
    """Ingestor for flat forced-alignment word lists."""

    @property
    def name(self) -> str:
        return "Forced-alignment JSON"

    @property
    def schema_name(self) -> str:
        return "mfa"

    def _extract(self, data: Any) -> Iterable[RawTimedToken]:
        items = data["words"] if isinstance(data, dict) else data
        for item in items:
            yield item["word"], item["start_time"], item["end_time"]

    def _keep(self, text: str) -> bool:
        return text.lower() not in MFA_SILENCE_TOKENS

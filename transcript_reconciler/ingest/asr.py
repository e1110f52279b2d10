"""ASR (Whisper-style) segment export ingestor.

WHY: Speech recognisers such as Whisper return segments of text, each
with a nested words array. Only the word level carries the timing the
aligner needs; segment text and confidence are irrelevant here.

HOW: Flattens ``segments[*].words[*]`` in document order into
(word, start, end) triples. Whisper prefixes words with a space
(" Hello"); the base class trims it.

RULES:
- Requires {"segments": [{"words": [{word, start, end}, ...]}, ...]}
- Segments without words contribute nothing
- "probability" and any other per-word metadata is discarded
"""

from __future__ import annotations

from typing import Any, Iterable

from transcript_reconciler.ingest.base import BaseTimedWordIngestor, RawTimedToken


class AsrIngestor(BaseTimedWordIngestor):
    """Ingestor for segment-nested ASR word timestamps."""

    @property
    def name(self) -> str:
        return "ASR JSON"

    @property
    def schema_name(self) -> str:
        return "asr"

    def _extract(self, data: Any) -> Iterable[RawTimedToken]:
        for segment in data["segments"]:
            for item in segment["words"]:
                yield item["word"], item["start"], item["end"]

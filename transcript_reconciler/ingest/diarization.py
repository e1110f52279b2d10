"""Speaker diarization ingestor.

WHY: Diarization tools (pyannote and friends) answer "who spoke when"
as a list of speaker turns. The overlay step needs those turns sorted
and validated, and the UI needs an initial label for every raw speaker
id so renames have something to start from.

HOW: Decodes and validates the JSON against the diarization schema,
rejects empty or inverted intervals, stable-sorts by start time and
builds an identity SpeakerMap in order of first appearance.

RULES:
- Accepts a list of {start, end, speaker} or {"segments": [...]}
- start < 0, or end <= start raises MalformedInput
- Sorting is stable: equal start times keep input order
- SpeakerMap starts as identity (raw id → raw id)
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from transcript_reconciler.core.ir import DiarizationSegment, SpeakerMap
from transcript_reconciler.errors import MalformedInput
from transcript_reconciler.ingest.base import JsonSource, load_json, validate

logger = logging.getLogger(__name__)


def ingest_diarization(source: JsonSource) -> Tuple[List[DiarizationSegment], SpeakerMap]:
    """Parse diarization output into sorted segments and an identity speaker map.

    Args:
        source: JSON bytes, JSON text or decoded JSON.

    Returns:
        (segments sorted by start_time, identity SpeakerMap)

    Raises:
        MalformedInput: On undecodable input, schema violations, negative
            times or zero/negative durations.
    """
    data = load_json(source)
    validate(data, "diarization")
    turns = data["segments"] if isinstance(data, dict) else data

    segments: List[DiarizationSegment] = []
    for index, turn in enumerate(turns):
        start = float(turn["start"])
        end = float(turn["end"])
        if start < 0:
            raise MalformedInput("Turn {} has a negative start time {}".format(index, start))
        if end <= start:
            raise MalformedInput(
                "Turn {} has a non-positive duration ({} → {})".format(index, start, end)
            )
        segments.append(DiarizationSegment(
            start_time=start,
            end_time=end,
            raw_speaker_id=turn["speaker"],
        ))

    segments.sort(key=lambda segment: segment.start_time)

    speaker_map: SpeakerMap = {}
    for segment in segments:
        speaker_map.setdefault(segment.raw_speaker_id, segment.raw_speaker_id)

    logger.info(
        "Diarization: ingested %d segments from %d speakers",
        len(segments), len(speaker_map),
    )
    return segments, speaker_map

"""Engine entry points and the composed apply-timestamps pipeline.

WHY: The surrounding application (session, CLI, anything embedding the
package) should not need to know which module implements which step.
This module is the single import surface: every function here is a
pure transformation with no hidden state, safe to retry or discard.

HOW: Thin wrappers over ingest/ and core/, plus apply_timestamps(),
which runs the full pass in order:
  strip tags → align → interpolate → overlay diarization
  → reconstruct tags → speaker separators

RULES:
- Nothing here mutates its inputs or keeps state between calls
- Ingest functions raise MalformedInput; nothing else raises on
  well-typed input
- Tags are stripped before alignment and restored after it, so markup
  never takes part in matching
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from transcript_reconciler.config import DEFAULT_WORDS_PER_SECOND
from transcript_reconciler.core.alignment import (
    AlignmentParams,
    AlignmentReport,
    align,
    align_with_report,
)
from transcript_reconciler.core.diarization import add_speaker_separators, overlay_diarization
from transcript_reconciler.core.interpolate import interpolate
from transcript_reconciler.core.ir import (
    DiarizationSegment,
    SpeakerMap,
    SpeakerTagInfo,
    Word,
)
from transcript_reconciler.core.tags import reconstruct_tags, strip_tags
from transcript_reconciler.errors import MalformedInput
from transcript_reconciler.ingest import INGESTORS
from transcript_reconciler.ingest.base import JsonSource
from transcript_reconciler.ingest.diarization import ingest_diarization
from transcript_reconciler.ingest.free_text import ingest_free_text

__all__ = [
    "align",
    "apply_timestamps",
    "ingest_diarization",
    "ingest_free_text",
    "ingest_timed_words",
    "interpolate",
    "overlay_diarization",
]

logger = logging.getLogger(__name__)


def ingest_timed_words(source: JsonSource, format: str) -> List[Word]:
    """Parse forced-alignment or ASR output into TimedWords.

    Args:
        source: JSON bytes, JSON text or decoded JSON.
        format: A key of INGESTORS ("mfa" or "asr").

    Raises:
        MalformedInput: For an unknown format or invalid input.
    """
    ingestor_cls = INGESTORS.get(format)
    if ingestor_cls is None:
        raise MalformedInput(
            "Unknown timing format {!r}. Available: {}".format(format, ", ".join(sorted(INGESTORS)))
        )
    return ingestor_cls().ingest(source)


def apply_timestamps(
    edited: Sequence[Word],
    reference: Sequence[Word],
    *,
    tags: Sequence[SpeakerTagInfo] = (),
    segments: Sequence[DiarizationSegment] = (),
    speaker_map: Optional[SpeakerMap] = None,
    params: Optional[AlignmentParams] = None,
    interpolate_gaps: bool = True,
    insert_separators: bool = True,
    default_rate: float = DEFAULT_WORDS_PER_SECOND,
) -> Tuple[List[Word], AlignmentReport]:
    """Run the full reconciliation pass on an edited transcript.

    Args:
        edited: The current (edited) word sequence, tags and all.
        reference: TimedWords from a fresh alignment/ASR run.
        tags: Extra tags recorded against the stripped sequence, such as
              those recovered by ingest_free_text().
        segments: Diarization segments; overlay is skipped when empty.
        speaker_map: raw id → display label for the overlay.
        params: Matcher thresholds.
        interpolate_gaps: Estimate times for unmatched words.
        insert_separators: Insert separator words between speaker turns.
        default_rate: Words per second for extrapolation.

    Returns:
        (final word sequence, AlignmentReport)
    """
    stripped, found_tags = strip_tags(edited)
    all_tags = sorted(list(found_tags) + list(tags), key=lambda tag: tag.word_index_before_tag)

    words, report = align_with_report(stripped, reference, params)
    if interpolate_gaps:
        words = interpolate(words, default_rate)
    if segments:
        words = overlay_diarization(words, segments, speaker_map)
    words = reconstruct_tags(words, all_tags, original_length=len(stripped))
    if insert_separators:
        words = add_speaker_separators(words)

    logger.info(
        "Applied timestamps: %d words out, %d tags restored", len(words), len(all_tags),
    )
    return words, report

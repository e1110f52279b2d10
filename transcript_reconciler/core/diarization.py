"""Diarization overlay and speaker-turn paragraph segmentation.

WHY: Diarization tools know who spoke when but not what was said; the
aligned transcript knows what was said and when but (usually) not who.
Overlaying the two attributes every timed word to a speaker, and speaker
changes are where readers expect paragraph breaks.

HOW: overlay_diarization() looks each unlabelled, timed word up against
the segments sorted by start time. Containment is checked by walking
back from the last segment starting at or before the word, using a
running maximum of end times to stop early. When no segment contains
the word, the nearest segment by boundary distance wins. Paragraph
starts are then set on the first word of every same-speaker run, and
separator words can optionally be inserted between speaker turns.

RULES:
- Segment intervals are half-open [start, end): a word at 1.0 between
  [0, 1.0) and [1.0, 2.0) belongs to the second
- Among overlapping containing segments, the largest overlap with the
  word's own interval wins, then the earliest segment
- Distance ties prefer the segment before the word
- Explicit speaker labels are never overwritten
- Labels go through the SpeakerMap (identity when absent)
- Existing paragraph starts are kept; turn starts are added
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from transcript_reconciler.core.ir import (
    DiarizationSegment,
    SpeakerMap,
    Word,
    make_separator,
    renumber,
)

logger = logging.getLogger(__name__)


class _SegmentIndex:
    """Sorted segments with the lookups the overlay needs."""

    def __init__(self, segments: Sequence[DiarizationSegment]) -> None:
        self.segments = sorted(segments, key=lambda segment: segment.start_time)
        self.starts = [segment.start_time for segment in self.segments]
        # running_max[i] = index of the segment with the latest end among 0..i
        self.running_max: List[int] = []
        best = 0
        for i, segment in enumerate(self.segments):
            if segment.end_time > self.segments[best].end_time:
                best = i
            self.running_max.append(best)

    def lookup(self, start: float, end: Optional[float]) -> Optional[DiarizationSegment]:
        if not self.segments:
            return None

        split = bisect.bisect_right(self.starts, start)

        best: Optional[DiarizationSegment] = None
        best_overlap = -1.0
        for i in range(split - 1, -1, -1):
            if self.segments[self.running_max[i]].end_time <= start:
                break
            segment = self.segments[i]
            if not segment.contains(start):
                continue
            overlap = self._overlap(segment, start, end)
            if overlap >= best_overlap:
                best, best_overlap = segment, overlap
        if best is not None:
            return best

        before = self.segments[self.running_max[split - 1]] if split > 0 else None
        after = self.segments[split] if split < len(self.segments) else None
        if before is None:
            return after
        if after is None:
            return before
        if start - before.end_time <= after.start_time - start:
            return before
        return after

    @staticmethod
    def _overlap(segment: DiarizationSegment, start: float, end: Optional[float]) -> float:
        if end is None or end <= start:
            return 0.0
        return max(0.0, min(segment.end_time, end) - max(segment.start_time, start))


def mark_speaker_turns(words: Sequence[Word]) -> List[Word]:
    """Set is_paragraph_start on the first word of every same-speaker run.

    Separator words are skipped when comparing neighbours.
    """
    result: List[Word] = []
    previous_label: Optional[str] = None
    seen_content = False
    for word in words:
        if word.is_separator:
            result.append(word)
            continue
        starts_turn = not seen_content or word.speaker_label != previous_label
        if starts_turn and not word.is_paragraph_start:
            word = replace(word, is_paragraph_start=True)
        previous_label = word.speaker_label
        seen_content = True
        result.append(word)
    return renumber(result)


def _paragraph_speakers(words: Sequence[Word]) -> List[Optional[str]]:
    """Speaker of the paragraph each word belongs to (first label seen in it)."""
    speakers: List[Optional[str]] = [None] * len(words)
    start = 0
    for i in range(1, len(words) + 1):
        if i == len(words) or (words[i].is_paragraph_start and not words[i].is_separator):
            label = next(
                (w.speaker_label for w in words[start:i] if w.speaker_label is not None),
                None,
            )
            for j in range(start, i):
                speakers[j] = label
            start = i
    return speakers


def add_speaker_separators(words: Sequence[Word]) -> List[Word]:
    """Insert an empty separator word before each change of speaker paragraph.

    WHY: Editors show a blank line between speaker turns. A synthetic
    word keeps that spacing inside the word list itself.

    RULES:
    - Existing separators are removed first, so repeated passes are stable
    - A separator goes before a paragraph start whose paragraph speaker
      differs from the previous paragraph's speaker
    - Never before the first word
    """
    content = [word for word in words if not word.is_separator]
    speakers = _paragraph_speakers(content)

    result: List[Word] = []
    previous: Optional[str] = None
    for i, word in enumerate(content):
        if i > 0 and word.is_paragraph_start and speakers[i] != previous:
            result.append(make_separator(0))
        if word.is_paragraph_start or i == 0:
            previous = speakers[i]
        result.append(word)
    return renumber(result)


def overlay_diarization(
    words: Sequence[Word],
    segments: Sequence[DiarizationSegment],
    speaker_map: Optional[SpeakerMap] = None,
    *,
    insert_separators: bool = False,
) -> List[Word]:
    """Attribute timed, unlabelled words to diarization speakers.

    Args:
        words: Words, ideally after align() and interpolate().
        segments: Diarization segments (any order).
        speaker_map: raw speaker id → display label; identity when None.
        insert_separators: Also insert separator words between turns.

    Returns:
        A new densely numbered sequence with speaker labels and
        speaker-turn paragraph starts.
    """
    index = _SegmentIndex(segments)
    mapping = speaker_map or {}

    labelled: List[Word] = []
    assigned = 0
    for word in words:
        if word.is_separator or word.speaker_label is not None or word.start_time is None:
            labelled.append(word)
            continue
        segment = index.lookup(word.start_time, word.end_time)
        if segment is None:
            labelled.append(word)
            continue
        label = mapping.get(segment.raw_speaker_id, segment.raw_speaker_id)
        labelled.append(replace(word, speaker_label=label))
        assigned += 1

    if not index.segments:
        logger.info("No diarization segments; speaker labels unchanged")
    else:
        logger.info("Assigned speakers to %d words from %d segments", assigned, len(index.segments))

    result = mark_speaker_turns(labelled)
    if insert_separators:
        result = add_speaker_separators(result)
    return result

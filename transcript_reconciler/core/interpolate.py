"""Timestamp interpolation for words the aligner could not match.

WHY: Words the user inserted (or that the reference misrecognised) come
out of alignment with no timing. Click-to-seek, captions and speaker
overlay all need *some* time for every word, and a good estimate
between two trusted neighbours beats nothing.

HOW: Timed words are anchors. Each run of untimed words is handled by
where it sits:
  - interior run: spread evenly across the gap between the preceding
    anchor's end and the following anchor's start
  - leading run: extrapolated backwards from the first anchor
  - trailing run: extrapolated forwards from the last anchor
Extrapolation uses a words-per-second rate estimated from the two
anchors nearest that end of the sequence, or the configured default
when fewer than two anchors exist. A final pass raises any filled
word that would start before the word preceding it.

RULES:
- Interior word k of r gets start = gap_start + k * (gap / (r + 1))
- Every interpolated word gets an end time no earlier than its start
- Extrapolated times never go below 0.0
- An interior gap starts at the earlier of the left anchor's end and the
  right anchor's start, so overlapping anchors never push a filled word
  past the next anchor
- A filled word never starts before the preceding timed word
- Anchor times are copied reference times and are never changed
- Separator words stay untimed
- A sequence with no anchors is returned unchanged
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Set

from transcript_reconciler.config import DEFAULT_WORDS_PER_SECOND
from transcript_reconciler.core.ir import Word, renumber

logger = logging.getLogger(__name__)


def _anchor_end(word: Word) -> float:
    return word.end_time if word.end_time is not None else word.start_time


def _estimate_rate(
    words: Sequence[Word],
    first: int,
    second: Optional[int],
    default_rate: float,
) -> float:
    """Words per second between two anchors (indices into words)."""
    if second is None:
        return default_rate
    elapsed = abs(words[second].start_time - words[first].start_time)
    distance = abs(second - first)
    if elapsed <= 0 or distance <= 0:
        return default_rate
    return distance / elapsed


def interpolate(
    words: Sequence[Word],
    default_rate: float = DEFAULT_WORDS_PER_SECOND,
) -> List[Word]:
    """Fill in start/end times for untimed words.

    Args:
        words: A Word sequence, typically straight out of align().
        default_rate: Words per second used when fewer than two anchors
                      exist to estimate the speaking rate.

    Returns:
        A new densely numbered sequence in which every non-separator word
        has a start time (if at least one anchor exists).
    """
    if default_rate <= 0:
        raise ValueError("default_rate must be positive")

    result = list(words)
    content = [i for i, word in enumerate(result) if not word.is_separator]
    anchors = [i for i in content if result[i].start_time is not None]

    if not anchors:
        if content:
            logger.info("No timed anchors; %d words left without timestamps", len(content))
        return renumber(result)

    positions = {index: order for order, index in enumerate(content)}
    filled = 0

    # Leading run
    first = anchors[0]
    lead_rate = _estimate_rate(result, first, anchors[1] if len(anchors) > 1 else None, default_rate)
    step = 1.0 / lead_rate
    first_start = result[first].start_time
    for index in content[:positions[first]]:
        distance = positions[first] - positions[index]
        start = max(0.0, first_start - distance * step)
        end = max(start, min(first_start, start + step))
        result[index] = replace(result[index], start_time=start, end_time=end)
        filled += 1

    # Interior runs
    for left, right in zip(anchors, anchors[1:]):
        run = content[positions[left] + 1:positions[right]]
        if not run:
            continue
        gap_end = result[right].start_time
        gap_start = min(_anchor_end(result[left]), gap_end)
        gap_step = max(gap_end - gap_start, 0.0) / (len(run) + 1)
        for k, index in enumerate(run, start=1):
            start = gap_start + k * gap_step
            result[index] = replace(result[index], start_time=start, end_time=start + gap_step)
            filled += 1

    # Trailing run
    last = anchors[-1]
    trail_rate = _estimate_rate(result, last, anchors[-2] if len(anchors) > 1 else None, default_rate)
    step = 1.0 / trail_rate
    last_end = _anchor_end(result[last])
    for index in content[positions[last] + 1:]:
        distance = positions[index] - positions[last]
        start = last_end + (distance - 1) * step
        result[index] = replace(result[index], start_time=start, end_time=start + step)
        filled += 1

    result = _clamp_monotonic(result, set(anchors))
    logger.info("Interpolated timestamps for %d of %d words", filled, len(content))
    return renumber(result)


def _clamp_monotonic(words: List[Word], anchors: Set[int]) -> List[Word]:
    """Raise any filled start time that falls below the previous word's start."""
    previous: Optional[float] = None
    clamped: List[Word] = []
    for index, word in enumerate(words):
        if word.is_separator or word.start_time is None:
            clamped.append(word)
            continue
        if index not in anchors and previous is not None and word.start_time < previous:
            logger.debug(
                "Clamping word %d (%r) start %.3f → %.3f",
                word.sequence_number, word.display_text, word.start_time, previous,
            )
            end = word.end_time
            if end is not None and end < previous:
                end = previous
            word = replace(word, start_time=previous, end_time=end)
        previous = word.start_time
        clamped.append(word)
    return clamped

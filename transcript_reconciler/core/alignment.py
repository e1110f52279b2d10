"""Alignment of an edited word sequence against a timed reference.

WHY: Users fix transcripts as text by inserting, deleting and retyping
words, which destroys the per-word timing. A fresh forced-alignment or
ASR run has trustworthy timing but not the user's text. Alignment keeps
the user's text and order exactly and copies timing over from the
reference wherever the same word can be found in the same place.

HOW: A normalized-token matcher with a monotone cursor:
  1. Index the reference: normalized_text → sorted reference positions
  2. Walk the edited words left to right. For each matchable word, take
     the first indexed position at or after the cursor (bisect), provided
     it lies inside the look-ahead window
  3. A match that skips more than ``confirm_gap`` reference words is only
     accepted if the next matchable edited word also occurs shortly after
     it; otherwise the word is treated as a user insertion
  3a. A candidate beyond the window is still accepted when it and the
     next ``resync_run`` matchable edited words sit on consecutive
     reference positions: the user deleted a long stretch, and the cursor
     jumps over it instead of stalling for the rest of the text
  4. On a match, copy start/end time and move the cursor past it.
     Reference words the cursor skips are user deletions and vanish

RULES:
- Output text/order == edited text/order; sequence numbers are dense
- Every copied time belongs to a reference word with equal normalized_text
- One reference word is consumed per match ("the the" stays two matches)
- Unmatched words get start_time = end_time = None
- Separator and punctuation-only words are never matched
- Deterministic: no randomness, ties resolved by smallest cursor gap
- Empty reference → all words unmatched, logged as NoReferenceData
- A candidate beyond the window without a consecutive run after it
  → word unmatched, counted and logged as AlignmentWindowExceeded
- Never raises on well-typed input
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from transcript_reconciler.config import (
    ALIGN_CONFIRM_GAP,
    ALIGN_LOOKAHEAD_WINDOW,
    ALIGN_RESYNC_RUN,
)
from transcript_reconciler.core.ir import Word, renumber

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlignmentParams:
    """Tunable thresholds for the matcher.

    RULES:
    - lookahead_window: reference positions [cursor, cursor + window)
      are eligible; must be >= 1
    - confirm_gap: skips larger than this need the next edited word to
      match within the window after the candidate; 0 disables the check
    - resync_run: a candidate beyond the window is accepted when this many
      following matchable words match the next reference positions in
      order; 0 disables resynchronisation
    """

    lookahead_window: int = ALIGN_LOOKAHEAD_WINDOW
    confirm_gap: int = ALIGN_CONFIRM_GAP
    resync_run: int = ALIGN_RESYNC_RUN

    def __post_init__(self) -> None:
        if self.lookahead_window < 1:
            raise ValueError("lookahead_window must be at least 1")
        if self.confirm_gap < 0:
            raise ValueError("confirm_gap must not be negative")
        if self.resync_run < 0:
            raise ValueError("resync_run must not be negative")


@dataclass
class AlignmentReport:
    """Quality counters for one alignment pass."""

    matched: int = 0
    unmatched: int = 0
    discarded_reference: int = 0
    window_exceeded: int = 0
    rejected_skips: int = 0
    resyncs: int = 0
    no_reference_data: bool = False

    @property
    def match_ratio(self) -> float:
        total = self.matched + self.unmatched
        return self.matched / total if total else 0.0


def _build_index(reference: Sequence[Word]) -> Dict[str, List[int]]:
    index: Dict[str, List[int]] = {}
    for position, word in enumerate(reference):
        if word.is_matchable:
            index.setdefault(word.normalized_text, []).append(position)
    return index


def _first_at_or_after(positions: Sequence[int], cursor: int) -> Optional[int]:
    at = bisect.bisect_left(positions, cursor)
    return positions[at] if at < len(positions) else None


def _next_matchable(edited: Sequence[Word], start: int) -> Optional[Word]:
    for word in edited[start:]:
        if word.is_matchable:
            return word
    return None



def _continues_run(
    edited: Sequence[Word],
    start: int,
    index: Dict[str, List[int]],
    candidate: int,
    run: int,
) -> bool:
    """True if the next ``run`` matchable words from start follow candidate position by position."""
    expected = candidate + 1
    remaining = run
    for word in edited[start:]:
        if remaining == 0:
            break
        if not word.is_matchable:
            continue
        if _first_at_or_after(index.get(word.normalized_text, []), expected) != expected:
            return False
        expected += 1
        remaining -= 1
    return remaining == 0

def match_words(
    edited: Sequence[Word],
    reference: Sequence[Word],
    params: Optional[AlignmentParams] = None,
) -> Tuple[List[Optional[int]], AlignmentReport]:
    """Map every edited word to a reference position, or None.

    WHY: align() copies timing; reconcile_text() copies timing *and*
    speaker labels from a partially timed previous version. Both need the
    same match decisions, so the matcher itself is exposed.

    Args:
        edited: The user's word sequence (timing ignored).
        reference: The sequence to match against, in time order.
        params: Matcher thresholds; defaults come from config.

    Returns:
        (one reference index or None per edited word, AlignmentReport)
    """
    params = params or AlignmentParams()
    report = AlignmentReport()
    matches: List[Optional[int]] = [None] * len(edited)

    if not reference:
        report.no_reference_data = True
        report.unmatched = sum(1 for word in edited if word.is_matchable)
        if edited:
            logger.warning(
                "No reference timing data; %d edited words left unmatched", len(edited),
            )
        return matches, report

    index = _build_index(reference)
    cursor = 0
    window = params.lookahead_window

    for edited_index, word in enumerate(edited):
        if not word.is_matchable:
            continue

        positions = index.get(word.normalized_text, [])
        candidate = _first_at_or_after(positions, cursor)

        if candidate is None:
            report.unmatched += 1
            continue

        if candidate >= cursor + window:
            if params.resync_run and _continues_run(
                edited, edited_index + 1, index, candidate, params.resync_run,
            ):
                report.resyncs += 1
                logger.debug(
                    "Resynchronised at word %d (%r): cursor %d jumps to %d",
                    word.sequence_number, word.display_text, cursor, candidate,
                )
                matches[edited_index] = candidate
                report.discarded_reference += candidate - cursor
                report.matched += 1
                cursor = candidate + 1
                continue
            report.window_exceeded += 1
            report.unmatched += 1
            logger.debug(
                "Window exceeded for word %d (%r): nearest reference at %d, cursor %d",
                word.sequence_number, word.display_text, candidate, cursor,
            )
            continue

        skipped = candidate - cursor
        if params.confirm_gap and skipped > params.confirm_gap:
            following = _next_matchable(edited, edited_index + 1)
            if following is not None:
                confirm = _first_at_or_after(index.get(following.normalized_text, []), candidate + 1)
                if confirm is None or confirm >= candidate + 1 + window:
                    report.rejected_skips += 1
                    report.unmatched += 1
                    logger.debug(
                        "Rejected %d-word skip for word %d (%r): not confirmed by %r",
                        skipped, word.sequence_number, word.display_text, following.display_text,
                    )
                    continue

        matches[edited_index] = candidate
        report.discarded_reference += skipped
        report.matched += 1
        cursor = candidate + 1

    report.discarded_reference += len(reference) - cursor

    if report.window_exceeded:
        logger.info(
            "AlignmentWindowExceeded: %d words had matches beyond the %d-word window",
            report.window_exceeded, window,
        )
    if report.resyncs:
        logger.info("Resynchronised %d times after long deletions", report.resyncs)
    logger.info(
        "Aligned %d/%d words (%.0f%%), %d reference words discarded",
        report.matched, report.matched + report.unmatched,
        report.match_ratio * 100, report.discarded_reference,
    )
    return matches, report


def align_with_report(
    edited: Sequence[Word],
    reference: Sequence[Word],
    params: Optional[AlignmentParams] = None,
) -> Tuple[List[Word], AlignmentReport]:
    """Align and also return the quality report.

    Returns:
        (aligned words, AlignmentReport)
    """
    matches, report = match_words(edited, reference, params)
    aligned: List[Word] = []
    for word, match in zip(edited, matches):
        if match is None:
            start, end = None, None
        else:
            start, end = reference[match].start_time, reference[match].end_time
        if word.start_time != start or word.end_time != end:
            word = replace(word, start_time=start, end_time=end)
        aligned.append(word)
    return renumber(aligned), report


def align(
    edited: Sequence[Word],
    reference: Sequence[Word],
    params: Optional[AlignmentParams] = None,
) -> List[Word]:
    """Copy reference timing onto the edited sequence.

    WHY: This is the engine's core entry point: keep the user's words,
    recover the tool's timing.

    Args:
        edited: Edited words; their own timing is treated as stale.
        reference: TimedWords from an alignment/ASR tool.
        params: Matcher thresholds; defaults come from config.

    Returns:
        New Words with edited text, order, speaker labels and paragraph
        flags, and timing from matched reference words (None elsewhere).
    """
    aligned, _ = align_with_report(edited, reference, params)
    return aligned

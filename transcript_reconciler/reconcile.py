"""Text rendering and text-to-words reconciliation.

WHY: Users edit the transcript as plain text. The word list has to be
rendered into text they can edit, and their edited text has to come
back as words without throwing away the timing and speaker attribution
the previous version already had.

HOW: render_text() writes one paragraph per speaker turn, each prefixed
with its start timestamp and speaker label. reconcile_text() parses the
edited text with the free-text ingestor (which reads those prefixes back)
and then runs the same matcher the aligner uses against the previous
words, copying timing and speaker labels from every match.

RULES:
- Paragraphs are separated by one blank line
- Separator words are never rendered
- A speaker tag written at the head of a paragraph wins over the
  previous label for that paragraph
- A timestamp written in the text is only used for words the matcher
  could not find in the previous version
- render_text() followed by reconcile_text() with no edits gives the
  same text, order, timing, speakers and paragraph starts
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Set

from transcript_reconciler.core.alignment import AlignmentParams, match_words
from transcript_reconciler.core.ir import SpeakerTagInfo, TagKind, Word, renumber
from transcript_reconciler.core.tags import strip_tags
from transcript_reconciler.core.timestamps import format_timestamp
from transcript_reconciler.ingest.free_text import ingest_free_text

logger = logging.getLogger(__name__)


def _paragraph_prefix(word: Word) -> str:
    parts: List[str] = []
    if word.start_time is not None:
        parts.append(format_timestamp(word.start_time))
    if word.speaker_label:
        parts.append("{}:".format(word.speaker_label))
    return " ".join(parts)


def render_text(words: Sequence[Word], *, annotate: bool = True) -> str:
    """Render words as editable transcript text.

    Args:
        words: The word sequence to render.
        annotate: Prefix each paragraph with "<timestamp> <Label>:".
                  Turn this off when the words already contain tag
                  pseudo-words, or the tags would appear twice.

    Returns:
        The transcript text ("" for no words).
    """
    paragraphs: List[List[str]] = []
    for word in words:
        if word.is_separator:
            continue
        if not paragraphs or word.is_paragraph_start:
            paragraphs.append([])
            if annotate:
                prefix = _paragraph_prefix(word)
                if prefix:
                    paragraphs[-1].append(prefix)
        paragraphs[-1].append(word.display_text)
    return "\n\n".join(" ".join(paragraph) for paragraph in paragraphs)


def _explicitly_labelled(words: Sequence[Word], tags: Sequence[SpeakerTagInfo]) -> Set[int]:
    """Indices of words whose paragraph opens with a written speaker tag.

    The free-text ingestor carries labels forward into untagged
    paragraphs; only labels the user actually wrote override the
    previous attribution.
    """
    heads = {
        tag.word_index_before_tag + 1
        for tag in tags
        if tag.kind in (TagKind.SPEAKER, TagKind.BOTH)
    }
    explicit: Set[int] = set()
    active = False
    for index, word in enumerate(words):
        if word.is_paragraph_start:
            active = index in heads
        if active:
            explicit.add(index)
    return explicit


def reconcile_text(
    text: str,
    previous: Sequence[Word],
    params: Optional[AlignmentParams] = None,
) -> List[Word]:
    """Turn edited text back into words, keeping what the previous version knew.

    Args:
        text: The user's edited transcript text.
        previous: The word sequence the text was rendered from.
        params: Matcher thresholds; defaults come from config.

    Returns:
        A new densely numbered word sequence in the text's order.
    """
    parsed, tags = ingest_free_text(text)
    explicit = _explicitly_labelled(parsed, tags)
    reference, _ = strip_tags(previous)
    reference = [word for word in reference if not word.is_separator]

    matches, report = match_words(parsed, reference, params)

    result: List[Word] = []
    for index, (word, match) in enumerate(zip(parsed, matches)):
        if match is None:
            result.append(word)
            continue
        source = reference[match]
        if source.start_time is not None:
            start, end = source.start_time, source.end_time
        else:
            start, end = word.start_time, None
        result.append(replace(
            word,
            start_time=start,
            end_time=end,
            speaker_label=word.speaker_label if index in explicit else source.speaker_label,
        ))

    logger.info(
        "Reconciled %d words against %d previous words (%d carried over)",
        len(result), len(reference), report.matched,
    )
    return renumber(result)

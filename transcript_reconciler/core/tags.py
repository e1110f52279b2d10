"""Inline speaker/timestamp tag scanning, stripping and reconstruction.

WHY: Edited transcripts carry markup such as "1:02.500 Speaker 2:" at
the start of paragraphs. Fed to the aligner as words, those tokens would
never match the reference and would drag the cursor around. They are
removed before alignment and put back afterwards at the equivalent
position, even if the user inserted or deleted words in between.

HOW: scan_leading_tags() recognises an optional timestamp token followed
by an optional speaker token at the head of a token list. strip_tags()
applies it at every paragraph start of a Word sequence, removes the
tag pseudo-words and records a SpeakerTagInfo for each tag.
reconstruct_tags() maps every recorded tag onto the new sequence
monotonically: the exact anchor word nearest the (length-scaled)
original position wins, otherwise the scaled position itself is used.

RULES:
- Tags are only recognised at the start of a paragraph (or sequence)
- Speaker forms: "Speaker N:", "SN:", "S?:", "SPEAKER_00:", or up to
  three capitalised tokens ending in ":" ("Dr. Jane Doe:")
- A name tag must end its token with the colon; "John:hello" is prose
- Tags never move backwards past a previously reinserted tag
- reconstruct_tags(*strip_tags(words)) == words when nothing changed
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

from transcript_reconciler.core.ir import (
    SpeakerTagInfo,
    TagKind,
    Word,
    make_word,
    renumber,
)
from transcript_reconciler.core.timestamps import is_timestamp_token, parse_timestamp

# "S1:", "S?:", "SPEAKER_00:", "spk_2:"
_SPEAKER_ID_RE = re.compile(r"^(S\d+|S\?|[A-Za-z]+_\d+):$")
_SPEAKER_NUMBER_RE = re.compile(r"^\d+:$")
_NAME_TOKEN_RE = re.compile(r"^[A-Z][\w'.\-]*$")

# Longest tag: timestamp + three name tokens.
_MAX_TAG_TOKENS = 4
_MAX_NAME_TOKENS = 3


@dataclass(frozen=True)
class LeadingTags:
    """Tags found at the head of a token list."""

    consumed: int
    timestamp_text: Optional[str] = None
    timestamp: Optional[float] = None
    speaker_text: Optional[str] = None
    speaker_label: Optional[str] = None

    @property
    def kind(self) -> TagKind:
        if self.timestamp_text is not None and self.speaker_text is not None:
            return TagKind.BOTH
        if self.timestamp_text is not None:
            return TagKind.TIMESTAMP
        return TagKind.SPEAKER

    @property
    def tag_text(self) -> str:
        parts = [p for p in (self.timestamp_text, self.speaker_text) if p is not None]
        return " ".join(parts)


def _match_speaker(tokens: Sequence[str]) -> Optional[Tuple[int, str]]:
    """Return (token count, label) for a speaker tag at tokens[0], or None."""
    if not tokens:
        return None

    first = tokens[0]
    if first.lower() == "speaker" and len(tokens) >= 2 and _SPEAKER_NUMBER_RE.match(tokens[1]):
        return 2, "{} {}".format(first, tokens[1][:-1])

    if _SPEAKER_ID_RE.match(first):
        return 1, first[:-1]

    for count in range(1, min(_MAX_NAME_TOKENS, len(tokens)) + 1):
        candidate = tokens[:count]
        last = candidate[-1]
        if not last.endswith(":") or len(last) < 2:
            continue
        names = list(candidate[:-1]) + [last[:-1]]
        if all(_NAME_TOKEN_RE.match(name) for name in names):
            return count, " ".join(names)
        # A colon-terminated token that is not a name ends the search
        return None
    return None


def scan_leading_tags(tokens: Sequence[str]) -> Optional[LeadingTags]:
    """Recognise an optional timestamp then an optional speaker tag.

    WHY: Both the free-text tokenizer (one line at a time) and the tag
    stripper (one paragraph of Words at a time) need the same grammar,
    so it lives in one place.

    RULES:
    - Timestamp first, speaker second; either may be absent
    - Returns None when neither is present

    Args:
        tokens: Whitespace-separated tokens, starting at the candidate
                paragraph head.

    Returns:
        LeadingTags describing what was consumed, or None.
    """
    index = 0
    timestamp_text: Optional[str] = None
    timestamp: Optional[float] = None

    if tokens and is_timestamp_token(tokens[0]):
        timestamp_text = tokens[0]
        timestamp = parse_timestamp(tokens[0])
        index = 1

    speaker_text: Optional[str] = None
    speaker_label: Optional[str] = None
    speaker = _match_speaker(tokens[index:])
    if speaker is not None:
        count, speaker_label = speaker
        speaker_text = " ".join(tokens[index:index + count])
        index += count

    if index == 0:
        return None

    return LeadingTags(
        consumed=index,
        timestamp_text=timestamp_text,
        timestamp=timestamp,
        speaker_text=speaker_text,
        speaker_label=speaker_label,
    )


def _paragraph_head(words: Sequence[Word], start: int) -> List[str]:
    """Texts of up to _MAX_TAG_TOKENS words from start, stopping at the next paragraph."""
    texts: List[str] = []
    for offset in range(_MAX_TAG_TOKENS):
        index = start + offset
        if index >= len(words):
            break
        word = words[index]
        if word.is_separator or (offset > 0 and word.is_paragraph_start):
            break
        texts.append(word.display_text)
    return texts


def strip_tags(words: Sequence[Word]) -> Tuple[List[Word], List[SpeakerTagInfo]]:
    """Remove inline tag pseudo-words from a Word sequence.

    WHY: Tag tokens folded into the word stream ("0:05.000", "Speaker",
    "2:") are markup. Alignment must only see content words.

    HOW: At every paragraph head, scan_leading_tags() decides how many
    words are markup. Those words are dropped and a SpeakerTagInfo is
    recorded together with the stripped pseudo-words; the paragraph flag
    moves to the next content word, and the tag remembers when it did.
    Anchor texts are filled in once the stripped sequence is known.

    RULES:
    - Content words keep their order; sequence numbers are made dense
    - word_index_before_tag indexes the stripped sequence (-1 = before all)
    - Separator words are content for indexing purposes but never tags

    Returns:
        (stripped words, tag infos in sequence order)
    """
    content: List[Word] = []
    pending: List[Tuple[int, LeadingTags, Tuple[Word, ...]]] = []
    moved: Set[int] = set()
    carry_paragraph = False

    index = 0
    while index < len(words):
        word = words[index]
        at_head = index == 0 or word.is_paragraph_start
        if at_head and not word.is_separator:
            lead = scan_leading_tags(_paragraph_head(words, index))
            if lead is not None:
                pending.append((len(content) - 1, lead, tuple(words[index:index + lead.consumed])))
                carry_paragraph = carry_paragraph or word.is_paragraph_start
                index += lead.consumed
                continue

        if carry_paragraph and not word.is_separator:
            if not word.is_paragraph_start:
                word = replace(word, is_paragraph_start=True)
                moved.add(len(content))
            carry_paragraph = False
        content.append(word)
        index += 1

    tags: List[SpeakerTagInfo] = []
    for before, lead, tag_words in pending:
        anchor_index = before + 1
        anchor_text = content[anchor_index].normalized_text if anchor_index < len(content) else ""
        tags.append(SpeakerTagInfo(
            word_index_before_tag=before,
            tag_text=lead.tag_text,
            kind=lead.kind,
            anchor_text=anchor_text,
            is_paragraph_start=tag_words[0].is_paragraph_start,
            moved_paragraph=anchor_index in moved,
            tag_words=tag_words,
        ))

    return renumber(content), tags


def _nearest_anchor(
    positions: Sequence[int],
    floor: int,
    target: int,
) -> Optional[int]:
    """Pick the anchor position >= floor closest to target; ties go to the later one."""
    start = bisect.bisect_left(positions, floor)
    if start >= len(positions):
        return None

    split = bisect.bisect_left(positions, target, lo=start)
    best: Optional[int] = None
    for candidate_index in (split - 1, split):
        if start <= candidate_index < len(positions):
            candidate = positions[candidate_index]
            if best is None or abs(candidate - target) <= abs(best - target):
                best = candidate
    return best


def reconstruct_tags(
    words: Sequence[Word],
    tags: Sequence[SpeakerTagInfo],
    original_length: Optional[int] = None,
) -> List[Word]:
    """Reinsert stripped tags into a (possibly edited) Word sequence.

    WHY: After alignment the user expects their inline timestamps and
    speaker tags back where they wrote them. Indices may have shifted
    because words were inserted or deleted since strip_tags() ran.

    HOW: Tags are processed in order of their recorded position. For
    each, the original insertion index is scaled to the new length; the
    nearest word at or after the previous tag whose normalized text
    equals the tag's anchor text is chosen. When no anchor word remains
    (the user deleted it) the scaled index is used directly. Tags recorded
    at the very end are appended.

    RULES:
    - Insertion positions never decrease (monotone anchor mapping)
    - Reinserted pseudo-words are the ones strip_tags() removed, labels
      and times included; tags read from text come back untimed and
      unlabelled
    - The content word after a tag gives its paragraph flag up only when
      stripping had moved the flag onto it
    - With no edits in between, the original sequence is reproduced

    Args:
        words: The post-alignment content sequence.
        tags: Tag infos from strip_tags() or the free-text ingestor.
        original_length: Length of the stripped sequence the tags were
                         recorded against. Defaults to len(words).

    Returns:
        A new, densely numbered sequence including the tag pseudo-words.
    """
    if not tags:
        return renumber(words)

    new_length = len(words)
    old_length = new_length if original_length is None else original_length

    anchor_index: Dict[str, List[int]] = {}
    for position, word in enumerate(words):
        if word.is_matchable:
            anchor_index.setdefault(word.normalized_text, []).append(position)

    insertions: Dict[int, List[SpeakerTagInfo]] = {}
    floor = 0
    for info in sorted(tags, key=lambda t: t.word_index_before_tag):
        target = info.word_index_before_tag + 1
        if target >= old_length:
            position = new_length
        else:
            if old_length == new_length or old_length <= 0:
                scaled = target
            else:
                scaled = int(round(target * new_length / old_length))
            position = scaled
            if info.anchor_text:
                found = _nearest_anchor(anchor_index.get(info.anchor_text, []), floor, scaled)
                if found is not None:
                    position = found
        position = min(max(position, floor), new_length)
        insertions.setdefault(position, []).append(info)
        floor = position

    result: List[Word] = []
    for position in range(new_length + 1):
        infos = insertions.get(position, [])
        for info in infos:
            result.extend(_tag_words(info))
        if position < new_length:
            word = words[position]
            if word.is_paragraph_start and any(info.moved_paragraph for info in infos):
                word = replace(word, is_paragraph_start=False)
            result.append(word)

    return renumber(result)


def _tag_words(info: SpeakerTagInfo) -> List[Word]:
    """The pseudo-words to reinsert for one tag."""
    if info.tag_words:
        return list(info.tag_words)
    return [
        make_word(0, token, is_paragraph_start=info.is_paragraph_start and token_index == 0)
        for token_index, token in enumerate(info.tag_text.split())
    ]

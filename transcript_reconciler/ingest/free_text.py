"""Free-text transcript ingestor (pasted, typed or formatted text).

WHY: Users paste transcripts from anywhere: plain prose, exports with
"Speaker 1:" headers, or our own rendered text with "1:02.500 Jane:"
paragraph prefixes. Whatever timing and speaker information the markup
carries is worth recovering before any timed reference is available.

HOW: The text is split into lines and each line is tokenized into a
small token stream: an optional TIMESTAMP token, an optional SPEAKER
token, then WORD tokens. ingest_free_text() walks the streams, turning
WORD tokens into Words and recording every tag as a SpeakerTagInfo so
it can be reinserted after alignment.

RULES:
- Blank lines end a paragraph; the next word is a paragraph start
- A line with a leading tag starts a new paragraph (speaker turn)
- A name tag ("Jane Doe:") is only a tag when its colon closes the
  token and is followed by a space or the end of the line; capitalised
  prose such as "Note: ..." is knowingly misread as a speaker
- A line holding only a tag applies it to the words on following lines
- Speaker labels carry forward until the next speaker tag
- A timestamp tag sets start_time (not end_time) of the next word
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from transcript_reconciler.core.ir import SpeakerTagInfo, TagKind, Word, make_word
from transcript_reconciler.core.tags import scan_leading_tags

logger = logging.getLogger(__name__)


class TokenKind(str, enum.Enum):
    TIMESTAMP = "timestamp"
    SPEAKER = "speaker"
    WORD = "word"


@dataclass(frozen=True)
class Token:
    """One lexical unit of a transcript line.

    text is the literal source text; value is the parsed seconds for
    TIMESTAMP tokens and the label for SPEAKER tokens.
    """

    kind: TokenKind
    text: str
    value: object = None


def tokenize_line(line: str) -> List[Token]:
    """Tokenize one line into TIMESTAMP / SPEAKER / WORD tokens.

    >>> [t.kind.value for t in tokenize_line("0:01.500 Speaker 1: Hello there")]
    ['timestamp', 'speaker', 'word', 'word']
    """
    parts = line.split()
    tokens: List[Token] = []
    lead = scan_leading_tags(parts)
    consumed = 0
    if lead is not None:
        if lead.timestamp_text is not None:
            tokens.append(Token(TokenKind.TIMESTAMP, lead.timestamp_text, lead.timestamp))
        if lead.speaker_text is not None:
            tokens.append(Token(TokenKind.SPEAKER, lead.speaker_text, lead.speaker_label))
        consumed = lead.consumed
    tokens.extend(Token(TokenKind.WORD, part) for part in parts[consumed:])
    return tokens


@dataclass
class _PendingTag:
    before: int
    text: str
    kind: TagKind
    moved_paragraph: bool = True


def ingest_free_text(text: str) -> Tuple[List[Word], List[SpeakerTagInfo]]:
    """Parse raw transcript text into Words plus the tags found in it.

    WHY: Pasted text is the most common starting point. Recovering the
    paragraph structure, speaker labels and any inline timestamps up
    front means the first alignment already has something to work with.

    HOW: Lines are tokenized with tokenize_line(). Tag tokens update the
    current speaker / pending timestamp and are recorded as
    SpeakerTagInfo entries whose index refers to the last word emitted
    before the tag. WORD tokens become Words.

    RULES:
    - sequence_number is dense and 1-based
    - The very first word is always a paragraph start
    - SpeakerTagInfo.anchor_text is the normalized text of the word the
      tag preceded ("" if the tag was last)
    - SpeakerTagInfo.moved_paragraph is False only when a blank line
      separates the tag from the next word

    Args:
        text: UTF-8 decoded transcript text.

    Returns:
        (words, tags), tags in text order.
    """
    words: List[Word] = []
    pending_tags: List[_PendingTag] = []
    awaiting_word: List[_PendingTag] = []

    current_speaker: Optional[str] = None
    pending_start: Optional[float] = None
    paragraph_pending = True

    for line in text.splitlines():
        if not line.strip():
            paragraph_pending = True
            # The next word now starts a paragraph of its own
            for pending in awaiting_word:
                pending.moved_paragraph = False
            continue

        tokens = tokenize_line(line)
        tag_tokens = [t for t in tokens if t.kind != TokenKind.WORD]
        if tag_tokens:
            kinds = {t.kind for t in tag_tokens}
            if kinds == {TokenKind.TIMESTAMP, TokenKind.SPEAKER}:
                kind = TagKind.BOTH
            elif TokenKind.TIMESTAMP in kinds:
                kind = TagKind.TIMESTAMP
            else:
                kind = TagKind.SPEAKER
            paragraph_pending = True
            pending = _PendingTag(
                before=len(words) - 1,
                text=" ".join(t.text for t in tag_tokens),
                kind=kind,
            )
            pending_tags.append(pending)
            awaiting_word.append(pending)
            for token in tag_tokens:
                if token.kind == TokenKind.TIMESTAMP:
                    pending_start = float(token.value)
                else:
                    current_speaker = str(token.value)

        for token in tokens:
            if token.kind != TokenKind.WORD:
                continue
            words.append(make_word(
                len(words) + 1,
                token.text,
                start_time=pending_start,
                speaker_label=current_speaker,
                is_paragraph_start=paragraph_pending,
            ))
            pending_start = None
            paragraph_pending = False
            awaiting_word = []

    if words and not words[0].is_paragraph_start:
        words[0] = replace(words[0], is_paragraph_start=True)

    tags: List[SpeakerTagInfo] = []
    for pending in pending_tags:
        anchor_index = pending.before + 1
        anchor_text = words[anchor_index].normalized_text if anchor_index < len(words) else ""
        tags.append(SpeakerTagInfo(
            word_index_before_tag=pending.before,
            tag_text=pending.text,
            kind=pending.kind,
            anchor_text=anchor_text,
            is_paragraph_start=True,
            moved_paragraph=pending.moved_paragraph,
        ))

    logger.info("Free text: parsed %d words and %d inline tags", len(words), len(tags))
    return words, tags

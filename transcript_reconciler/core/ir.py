"""Intermediate representation dataclasses for timed transcripts.

WHY: Forced-alignment exports, ASR exports, diarization output and
hand-edited text all describe the same thing: an ordered run of words,
some with timing, some with a speaker. The IR gives every stage one
well-typed form to consume and produce, decoupling parsing from
reconciliation and from formatting.

HOW: Frozen dataclasses, derived with dataclasses.replace():
  Word               — one word (or pseudo-word) with optional timing/speaker
  DiarizationSegment — one speaker turn from a diarization tool
  SpeakerTagInfo     — an inline tag removed before alignment
  TranscriptVersion  — an immutable named snapshot of a word sequence

RULES:
- sequence_number is dense, 1-based and strictly increasing (renumber())
- normalized_text is for matching only, never for display
- end_time set implies start_time set and start_time <= end_time
- A TimedWord is a Word with both times set; only ingestors produce them
- Separator words have empty text and are never matched or timed
- All times are float seconds
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

SpeakerMap = Dict[str, str]
"""Raw diarization speaker id → user-facing display label."""

# Trailing punctuation removed when normalizing; apostrophes inside words stay.
_TRAILING_PUNCTUATION_RE = re.compile(r"[^\w]+$", re.UNICODE)
_LEADING_OPENERS_RE = re.compile(r"^[\"'(\[{“‘«¿¡]+")


def normalize_text(display_text: str) -> str:
    """Return the matching key for a word's display text.

    WHY: "World," "world" and "(world" are the same spoken word. Alignment
    compares normalized forms so punctuation and casing edits do not
    break timing recovery.

    RULES:
    - Lower-cased
    - Trailing punctuation stripped ("world?!" → "world")
    - Leading opening quotes/brackets stripped ("(world" → "world")
    - Punctuation-only tokens normalize to "" and never match anything
    """
    text = display_text.strip().lower()
    text = _TRAILING_PUNCTUATION_RE.sub("", text)
    return _LEADING_OPENERS_RE.sub("", text)


@dataclass(frozen=True)
class Word:
    """A single word in a transcript sequence.

    WHY: Every stage (ingestion, alignment, interpolation, overlay,
    rendering) works on the same unit. Keeping it immutable means a
    Word stored in a TranscriptVersion can never be changed by a later
    edit; edits always build new Words.

    RULES:
    - display_text: exactly what the user sees/typed
    - normalized_text: normalize_text(display_text), used for matching
    - start_time / end_time: float seconds or None when unknown
    - speaker_label: display label or None when unattributed
    - is_paragraph_start: first word of a speaker turn or visual paragraph
    - is_separator: synthetic empty spacing word between speaker turns
    """

    sequence_number: int
    display_text: str
    normalized_text: str
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    speaker_label: Optional[str] = None
    is_paragraph_start: bool = False
    is_separator: bool = False

    def __post_init__(self) -> None:
        if self.end_time is not None:
            if self.start_time is None:
                raise ValueError(
                    "Word {} has an end time but no start time".format(self.sequence_number)
                )
            if self.start_time > self.end_time:
                raise ValueError(
                    "Word {} starts after it ends ({} > {})".format(
                        self.sequence_number, self.start_time, self.end_time,
                    )
                )

    @property
    def is_timed(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def is_matchable(self) -> bool:
        """True if the word can take part in text matching."""
        return not self.is_separator and bool(self.normalized_text)


def make_word(
    sequence_number: int,
    display_text: str,
    start_time: Optional[float] = None,
    end_time: Optional[float] = None,
    speaker_label: Optional[str] = None,
    is_paragraph_start: bool = False,
) -> Word:
    """Build a Word, computing normalized_text from display_text."""
    return Word(
        sequence_number=sequence_number,
        display_text=display_text,
        normalized_text=normalize_text(display_text),
        start_time=start_time,
        end_time=end_time,
        speaker_label=speaker_label,
        is_paragraph_start=is_paragraph_start,
    )


def make_separator(sequence_number: int) -> Word:
    """Build the empty spacing word inserted between speaker turns."""
    return Word(
        sequence_number=sequence_number,
        display_text="",
        normalized_text="",
        is_separator=True,
    )


def renumber(words: Iterable[Word]) -> List[Word]:
    """Return the words with dense 1-based sequence numbers.

    Words already carrying the right number are reused as-is.
    """
    result: List[Word] = []
    for index, word in enumerate(words, start=1):
        if word.sequence_number != index:
            word = replace(word, sequence_number=index)
        result.append(word)
    return result


@dataclass(frozen=True)
class DiarizationSegment:
    """A time interval attributed to one speaker by a diarization tool.

    RULES:
    - Interval is half-open: [start_time, end_time)
    - start_time < end_time (enforced by the diarization ingestor)
    - raw_speaker_id is the tool's id; display labels live in SpeakerMap
    """

    start_time: float
    end_time: float
    raw_speaker_id: str

    def contains(self, time: float) -> bool:
        return self.start_time <= time < self.end_time


class TagKind(str, enum.Enum):
    """What an inline tag carried. Inherits from str so it serializes cleanly."""

    TIMESTAMP = "timestamp"
    SPEAKER = "speaker"
    BOTH = "both"


@dataclass(frozen=True)
class SpeakerTagInfo:
    """An inline timestamp/speaker tag removed from a word sequence.

    WHY: Tags such as "1:02.500 Speaker 2:" are markup, not speech. They
    must not take part in alignment, but the user expects them back in
    the same place afterwards, even if indices shifted in between.

    RULES:
    - word_index_before_tag: 0-based index of the nearest preceding
      content word in the stripped sequence, -1 when the tag came first
    - tag_text: the tag's literal text, tokens joined by single spaces
    - anchor_text: normalized text of the content word the tag preceded,
      "" when the tag was at the very end
    - is_paragraph_start: paragraph flag of the tag's first token
    - moved_paragraph: the following content word is a paragraph start
      only because the tag was removed from in front of it
    - tag_words: the pseudo-words as they were stripped, so they come
      back with their own labels and times; empty for tags read from text
    """

    word_index_before_tag: int
    tag_text: str
    kind: TagKind
    anchor_text: str = ""
    is_paragraph_start: bool = False
    moved_paragraph: bool = False
    tag_words: Tuple[Word, ...] = ()


@dataclass(frozen=True)
class TranscriptVersion:
    """An immutable, named snapshot of a transcript.

    RULES:
    - words is a tuple so the snapshot cannot be mutated in place
    - name describes the operation that produced it ("Whisper Applied", ...)
    """

    name: str
    words: Tuple[Word, ...]

    @classmethod
    def create(cls, name: str, words: Iterable[Word]) -> "TranscriptVersion":
        return cls(name=name, words=tuple(renumber(words)))


# ---------------------------------------------------------------------------
# JSON (de)serialization
# ---------------------------------------------------------------------------


def word_to_dict(word: Word) -> Dict[str, Any]:
    """Serialise a Word for JSON persistence and export."""
    payload: Dict[str, Any] = {
        "sequence_number": word.sequence_number,
        "display_text": word.display_text,
        "normalized_text": word.normalized_text,
        "start_time": word.start_time,
        "end_time": word.end_time,
        "speaker_label": word.speaker_label,
        "is_paragraph_start": word.is_paragraph_start,
    }
    if word.is_separator:
        payload["is_separator"] = True
    return payload


def word_from_dict(data: Dict[str, Any]) -> Word:
    """Rebuild a Word from word_to_dict() output.

    normalized_text is recomputed when absent so hand-written state
    files only need display_text.
    """
    display_text = data["display_text"]
    return Word(
        sequence_number=int(data["sequence_number"]),
        display_text=display_text,
        normalized_text=data.get("normalized_text", normalize_text(display_text)),
        start_time=data.get("start_time"),
        end_time=data.get("end_time"),
        speaker_label=data.get("speaker_label"),
        is_paragraph_start=bool(data.get("is_paragraph_start", False)),
        is_separator=bool(data.get("is_separator", False)),
    )

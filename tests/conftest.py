"""Shared test fixtures for the transcript_reconciler test suite.

WHY: Most test modules need the same small, hand-checked transcripts:
a forced-alignment export, an ASR export, a diarization and a formatted
transcript that all describe the same two-speaker exchange. Keeping
them here means every module tests against the same ground truth.

HOW: Module-level constants hold the raw payloads; fixtures hand out
fresh copies plus a ``make_words`` factory for building Word lists
from plain strings or (text, start, end) tuples.

RULES:
- Times are seconds and are exact binary-friendly values where possible
- Payload shapes match the bundled JSON schemas exactly
"""

import copy
from typing import Any, Dict, List

import pytest

from transcript_reconciler.core.ir import Word, make_word


# ---------------------------------------------------------------------------
# Sample exchange: SPEAKER_00 asks, SPEAKER_01 answers
# ---------------------------------------------------------------------------

MFA_WORDS: List[Dict[str, Any]] = [
    {"word": "how",    "start_time": 0.0,  "end_time": 0.25},
    {"word": "are",    "start_time": 0.25, "end_time": 0.5},
    {"word": "you",    "start_time": 0.5,  "end_time": 0.75},
    {"word": "sp",     "start_time": 0.75, "end_time": 1.0},
    {"word": "i",      "start_time": 1.0,  "end_time": 1.25},
    {"word": "am",     "start_time": 1.25, "end_time": 1.5},
    {"word": "fine",   "start_time": 1.5,  "end_time": 2.0},
    {"word": "thanks", "start_time": 2.0,  "end_time": 2.5},
]

ASR_RESPONSE: Dict[str, Any] = {
    "text": " How are you? I am fine, thanks.",
    "segments": [
        {
            "id": 0,
            "text": " How are you?",
            "words": [
                {"word": " How",  "start": 0.0,  "end": 0.25, "probability": 0.98},
                {"word": " are",  "start": 0.25, "end": 0.5,  "probability": 0.97},
                {"word": " you?", "start": 0.5,  "end": 0.75, "probability": 0.95},
            ],
        },
        {
            "id": 1,
            "text": " I am fine, thanks.",
            "words": [
                {"word": " I",       "start": 1.0,  "end": 1.25, "probability": 0.99},
                {"word": " am",      "start": 1.25, "end": 1.5,  "probability": 0.97},
                {"word": " fine,",   "start": 1.5,  "end": 2.0,  "probability": 0.96},
                {"word": " thanks.", "start": 2.0,  "end": 2.5,  "probability": 0.94},
            ],
        },
    ],
}

DIARIZATION: List[Dict[str, Any]] = [
    {"start": 0.0, "end": 1.0, "speaker": "SPEAKER_00"},
    {"start": 1.0, "end": 3.0, "speaker": "SPEAKER_01"},
]

FORMATTED_TRANSCRIPT = (
    "0.000 Anna: How are you?\n"
    "\n"
    "1.000 Ben: I am fine, thanks."
)

EDITED_TRANSCRIPT = "How are you?\n\nI am really fine, thanks."


@pytest.fixture
def mfa_words():
    """Forced-alignment word list (includes one silence interval)."""
    return copy.deepcopy(MFA_WORDS)


@pytest.fixture
def asr_response():
    """Whisper-style ASR response with nested word timestamps."""
    return copy.deepcopy(ASR_RESPONSE)


@pytest.fixture
def diarization_turns():
    return copy.deepcopy(DIARIZATION)


@pytest.fixture
def formatted_transcript():
    return FORMATTED_TRANSCRIPT


@pytest.fixture
def edited_transcript():
    return EDITED_TRANSCRIPT


@pytest.fixture
def make_words():
    """Factory: build dense Word lists from strings or (text, start, end) tuples.

    ``make_words("Hello", ("world", 0.5, 0.9))`` → two Words, the second timed.
    The first word is a paragraph start unless ``first_paragraph=False``.
    """

    def _make(*items, first_paragraph: bool = True) -> List[Word]:
        words: List[Word] = []
        for index, item in enumerate(items, start=1):
            if isinstance(item, str):
                text, start, end = item, None, None
            else:
                text, start, end = item
            words.append(make_word(
                index,
                text,
                start_time=start,
                end_time=end,
                is_paragraph_start=first_paragraph and index == 1,
            ))
        return words

    return _make

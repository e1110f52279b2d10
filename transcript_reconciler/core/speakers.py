"""Speaker label operations: rename, merge and replace.

WHY: Diarization ids ("SPEAKER_00") are rarely what the user wants to
read, and diarization splits one person into two often enough that
merging is routine. These are explicit user actions; alignment never
touches the SpeakerMap.

RULES:
- Every operation returns a new map / new word list; inputs are untouched
- Map operations act on display labels keyed by raw id
- Word operations act on Word.speaker_label directly
- Separator words never receive a label
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Sequence

from transcript_reconciler.core.ir import SpeakerMap, Word


def rename_speaker(speaker_map: SpeakerMap, raw_speaker_id: str, label: str) -> SpeakerMap:
    """Give one raw speaker id a new display label."""
    if raw_speaker_id not in speaker_map:
        raise KeyError("Unknown speaker id: {}".format(raw_speaker_id))
    label = label.strip()
    if not label:
        raise ValueError("Speaker label must not be empty")
    updated = dict(speaker_map)
    updated[raw_speaker_id] = label
    return updated


def merge_speakers(speaker_map: SpeakerMap, source_label: str, target_label: str) -> SpeakerMap:
    """Point every raw id currently shown as source_label at target_label.

    Merging a label into itself is a no-op.
    """
    if source_label == target_label:
        return dict(speaker_map)
    if source_label not in speaker_map.values():
        raise KeyError("Unknown speaker label: {}".format(source_label))
    return {
        raw: (target_label if label == source_label else label)
        for raw, label in speaker_map.items()
    }


def replace_speaker_label(words: Sequence[Word], old_label: str, new_label: str) -> List[Word]:
    """Replace-all: every word labelled old_label gets new_label."""
    return [
        replace(word, speaker_label=new_label) if word.speaker_label == old_label else word
        for word in words
    ]


def replace_selected_speaker_labels(
    words: Sequence[Word],
    indices: Iterable[int],
    new_label: str,
) -> List[Word]:
    """Set new_label on the words at the given 0-based positions.

    Raises:
        IndexError: If any index is outside the word list.
    """
    selected = set(indices)
    for index in selected:
        if not 0 <= index < len(words):
            raise IndexError("Word index {} out of range".format(index))
    return [
        replace(word, speaker_label=new_label)
        if index in selected and not word.is_separator else word
        for index, word in enumerate(words)
    ]

"""Editor session: the stateful façade over the pure engine.

WHY: An editor is more than the engine. It holds imported reference
timings until the user applies them, the diarization and speaker map,
the version history and the persistence port. Something has to own
that state, apply imports atomically and serialize alignment runs.

HOW: EditorSession keeps the loaded reference data, the speaker map and
a VersionHistory. Every operation that changes the transcript commits a
new version and saves the history through the injected HistoryStore.
apply_timestamps() takes a non-blocking lock so a second request while
one is running fails immediately with AlignmentPending.

RULES:
- Imports parse first and only then assign state; a MalformedInput
  leaves the session untouched
- Pasting text or loading a formatted transcript resets the history
- A reference timing source is cleared after it has been applied
- interpolate_edits() refuses when the working words equal the current
  version
- The history is saved after every committed change
- Separator words are re-placed after text and speaker edits when
  insert_separators is on
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence

from transcript_reconciler.core.alignment import AlignmentParams, AlignmentReport
from transcript_reconciler.core.diarization import add_speaker_separators
from transcript_reconciler.core.interpolate import interpolate
from transcript_reconciler.core.ir import (
    DiarizationSegment,
    SpeakerMap,
    SpeakerTagInfo,
    TranscriptVersion,
    Word,
)
from transcript_reconciler.core.speakers import (
    merge_speakers,
    rename_speaker,
    replace_selected_speaker_labels,
    replace_speaker_label,
)
from transcript_reconciler.engine import apply_timestamps, ingest_timed_words
from transcript_reconciler.errors import AlignmentPending
from transcript_reconciler.history import HistoryStore, InMemoryHistoryStore, VersionHistory
from transcript_reconciler.ingest.base import JsonSource
from transcript_reconciler.ingest.diarization import ingest_diarization
from transcript_reconciler.ingest.free_text import ingest_free_text
from transcript_reconciler.reconcile import reconcile_text, render_text

logger = logging.getLogger(__name__)

# Version names shown in the history list
_APPLIED_NAMES = {"mfa": "MFA Applied", "asr": "ASR Applied"}


class EditorSession:
    """Holds one transcript's editing state.

    Args:
        store: Persistence port. Defaults to an InMemoryHistoryStore.
        params: Alignment thresholds used by every alignment pass.
        insert_separators: Insert separator words between speaker turns
                           when applying timestamps.
        interpolate_gaps: Estimate times for words alignment left untimed.
    """

    def __init__(
        self,
        store: Optional[HistoryStore] = None,
        params: Optional[AlignmentParams] = None,
        insert_separators: bool = True,
        interpolate_gaps: bool = True,
    ) -> None:
        self.store = store or InMemoryHistoryStore()
        self.params = params or AlignmentParams()
        self.insert_separators = insert_separators
        self.interpolate_gaps = interpolate_gaps

        self.history = self.store.load() or VersionHistory()
        self.references: Dict[str, List[Word]] = {}
        self.segments: List[DiarizationSegment] = []
        self.speaker_map: SpeakerMap = {}
        self.recovered_tags: List[SpeakerTagInfo] = []
        self.last_report: Optional[AlignmentReport] = None
        self._alignment_lock = threading.Lock()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def current(self) -> Optional[TranscriptVersion]:
        return self.history.current

    @property
    def words(self) -> List[Word]:
        return self.history.working_copy()

    def text(self, annotate: bool = True) -> str:
        return render_text(self.words, annotate=annotate)

    def _commit(self, name: str, words: Iterable[Word]) -> TranscriptVersion:
        version = self.history.commit(name, words)
        self.store.save(self.history)
        logger.info("New version %r (%d words)", name, len(version.words))
        return version

    def _reset_history(self, name: str, words: Iterable[Word]) -> TranscriptVersion:
        version = self.history.replace(name, words)
        self.store.save(self.history)
        logger.info("History reset with %r (%d words)", name, len(version.words))
        return version

    def _layout(self, words: Sequence[Word]) -> List[Word]:
        """Re-place separator words after an edit that may move speaker turns."""
        if self.insert_separators:
            return add_speaker_separators(words)
        return list(words)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def load_timed_words(self, source: JsonSource, format: str) -> List[Word]:
        """Parse and hold a reference timing source until it is applied."""
        words = ingest_timed_words(source, format)
        self.references[format] = words
        return words

    def load_diarization(self, source: JsonSource) -> List[DiarizationSegment]:
        segments, speaker_map = ingest_diarization(source)
        self.segments = segments
        self.speaker_map = speaker_map
        return segments

    def paste_text(self, text: str) -> TranscriptVersion:
        """Start over from pasted text. Inline tags become word data."""
        words, _ = ingest_free_text(text)
        self.recovered_tags = []
        return self._reset_history("Pasted Transcript", words)

    def load_formatted_text(self, text: str) -> TranscriptVersion:
        """Start over from a formatted transcript, keeping its tags for later."""
        words, tags = ingest_free_text(text)
        self.recovered_tags = tags
        return self._reset_history("Uploaded Transcript", words)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def save_text(self, text: str) -> Optional[TranscriptVersion]:
        """Reconcile edited text into a new version; None if nothing changed."""
        words = reconcile_text(text, self.words, self.params)
        if not self.history.is_dirty(words):
            logger.info("Text unchanged; no version created")
            return None
        return self._commit("Edited", self._layout(words))

    def save_words(self, words: Sequence[Word], name: str = "Edited") -> TranscriptVersion:
        return self._commit(name, words)

    def is_dirty(self, words: Iterable[Word]) -> bool:
        return self.history.is_dirty(words)

    def apply_timestamps(self, source: str, *, restore_tags: bool = False) -> TranscriptVersion:
        """Align the current version against a loaded reference.

        Args:
            source: The format key the reference was loaded under.
            restore_tags: Reinsert the tags kept by load_formatted_text().

        Raises:
            AlignmentPending: If another alignment is running.
            KeyError: If no reference was loaded under that key.
            ValueError: If there is no transcript to align.
        """
        if not self._alignment_lock.acquire(blocking=False):
            raise AlignmentPending("An alignment is already in progress")
        try:
            if source not in self.references:
                raise KeyError("No {} timing data loaded".format(source))
            edited = self.words
            if not edited:
                raise ValueError("No transcript to align")

            words, report = apply_timestamps(
                edited,
                self.references[source],
                tags=self.recovered_tags if restore_tags else (),
                segments=self.segments,
                speaker_map=self.speaker_map,
                params=self.params,
                interpolate_gaps=self.interpolate_gaps,
                insert_separators=self.insert_separators,
            )
            self.last_report = report
            version = self._commit(_APPLIED_NAMES.get(source, "Timestamps Applied"), words)
            del self.references[source]
            if restore_tags:
                self.recovered_tags = []
            return version
        finally:
            self._alignment_lock.release()

    def interpolate_edits(self, words: Optional[Sequence[Word]] = None) -> TranscriptVersion:
        """Estimate timing for edited words and commit the result.

        Args:
            words: Edited words. Defaults to the current working copy.

        Raises:
            ValueError: If words do not differ from the current version.
        """
        words = list(words) if words is not None else self.words
        if not self.history.is_dirty(words):
            raise ValueError("No changes to interpolate")
        return self._commit("Interpolated", interpolate(words))

    # ------------------------------------------------------------------
    # Speakers
    # ------------------------------------------------------------------

    def rename_speaker(self, raw_speaker_id: str, label: str) -> SpeakerMap:
        self.speaker_map = rename_speaker(self.speaker_map, raw_speaker_id, label)
        return self.speaker_map

    def merge_speakers(self, source_label: str, target_label: str) -> TranscriptVersion:
        """Merge source_label into target_label in the map and in the words."""
        if source_label in self.speaker_map.values():
            self.speaker_map = merge_speakers(self.speaker_map, source_label, target_label)
        words = replace_speaker_label(self.words, source_label, target_label)
        return self._commit("Speakers Merged", self._layout(words))

    def replace_speaker_label(self, old_label: str, new_label: str) -> TranscriptVersion:
        words = replace_speaker_label(self.words, old_label, new_label)
        return self._commit("Speaker Replaced", self._layout(words))

    def replace_selected_speaker_labels(
        self, indices: Iterable[int], new_label: str,
    ) -> TranscriptVersion:
        words = replace_selected_speaker_labels(self.words, indices, new_label)
        return self._commit("Speaker Replaced", self._layout(words))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> Optional[TranscriptVersion]:
        version = self.history.undo()
        self.store.save(self.history)
        return version

    def redo(self) -> Optional[TranscriptVersion]:
        version = self.history.redo()
        self.store.save(self.history)
        return version

    def reset(self) -> None:
        """Drop every piece of state, persisted history included."""
        self.history = VersionHistory()
        self.references.clear()
        self.segments = []
        self.speaker_map = {}
        self.recovered_tags = []
        self.last_report = None
        self.store.clear()
        logger.info("Session reset")

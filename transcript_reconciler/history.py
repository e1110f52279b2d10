"""Linear version history and its persistence port.

WHY: Every engine pass (paste, apply timestamps, interpolate, speaker
edits) produces a new transcript. Users need to step back and forth
between them, and the history must survive a restart, without the
engine itself ever holding persistent state.

HOW: VersionHistory is an ordered list of immutable TranscriptVersions
plus a cursor. commit() drops everything after the cursor and appends;
undo()/redo() only move the cursor. HistoryStore is the persistence
port the session writes through: JsonFileHistoryStore for the CLI and
InMemoryHistoryStore for tests and embedding.

RULES:
- Stored versions are never mutated; callers get copies to edit
- commit() truncates redo versions before appending
- replace() resets the history to a single version
- An empty history has current_index == -1 and current is None
- JSON state is versioned; unknown or corrupt state raises HistoryError
"""

from __future__ import annotations

import abc
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from transcript_reconciler.core.ir import (
    TranscriptVersion,
    Word,
    word_from_dict,
    word_to_dict,
)
from transcript_reconciler.errors import HistoryError

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


class VersionHistory:
    """An undo/redo stack of TranscriptVersions."""

    def __init__(
        self,
        versions: Iterable[TranscriptVersion] = (),
        current_index: Optional[int] = None,
    ) -> None:
        self._versions: List[TranscriptVersion] = list(versions)
        if current_index is None:
            current_index = len(self._versions) - 1
        if self._versions and not 0 <= current_index < len(self._versions):
            raise ValueError("current_index {} out of range".format(current_index))
        if not self._versions:
            current_index = -1
        self._index = current_index

    def __len__(self) -> int:
        return len(self._versions)

    @property
    def versions(self) -> List[TranscriptVersion]:
        return list(self._versions)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current(self) -> Optional[TranscriptVersion]:
        if self._index < 0:
            return None
        return self._versions[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._versions) - 1

    def working_copy(self) -> List[Word]:
        """A fresh, editable list of the current version's words."""
        current = self.current
        return list(current.words) if current is not None else []

    def commit(self, name: str, words: Iterable[Word]) -> TranscriptVersion:
        """Append a new version after the cursor, discarding redo versions."""
        version = TranscriptVersion.create(name, words)
        del self._versions[self._index + 1:]
        self._versions.append(version)
        self._index = len(self._versions) - 1
        logger.debug("Committed version %d: %s", self._index, name)
        return version

    def replace(self, name: str, words: Iterable[Word]) -> TranscriptVersion:
        """Throw the history away and start again from one version."""
        version = TranscriptVersion.create(name, words)
        self._versions = [version]
        self._index = 0
        return version

    def undo(self) -> Optional[TranscriptVersion]:
        if self.can_undo:
            self._index -= 1
        return self.current

    def redo(self) -> Optional[TranscriptVersion]:
        if self.can_redo:
            self._index += 1
        return self.current

    def is_dirty(self, words: Iterable[Word]) -> bool:
        """True if words differ from the current version in text, speaker or paragraphing.

        Timing and separator words are not compared: only edits the user
        can see in the text count as changes.
        """
        words = [w for w in words if not w.is_separator]
        baseline = [w for w in self.working_copy() if not w.is_separator]
        if len(words) != len(baseline):
            return True
        return any(
            (a.display_text, a.speaker_label, a.is_paragraph_start)
            != (b.display_text, b.speaker_label, b.is_paragraph_start)
            for a, b in zip(words, baseline)
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format_version": STATE_FORMAT_VERSION,
            "current_index": self._index,
            "versions": [
                {"name": version.name, "words": [word_to_dict(w) for w in version.words]}
                for version in self._versions
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionHistory":
        """Rebuild a history from to_dict() output.

        Raises:
            HistoryError: If the payload is not a valid history.
        """
        if not isinstance(data, dict):
            raise HistoryError("History state must be a JSON object")
        if data.get("format_version") != STATE_FORMAT_VERSION:
            raise HistoryError(
                "Unsupported history format version: {!r}".format(data.get("format_version"))
            )
        try:
            versions = [
                TranscriptVersion.create(
                    str(entry["name"]),
                    [word_from_dict(w) for w in entry["words"]],
                )
                for entry in data["versions"]
            ]
            return cls(versions, int(data["current_index"]) if versions else None)
        except (KeyError, TypeError, ValueError) as exc:
            raise HistoryError("Invalid history state: {}".format(exc)) from exc


class HistoryStore(abc.ABC):
    """Persistence port for VersionHistory."""

    @abc.abstractmethod
    def load(self) -> Optional[VersionHistory]:
        """Return the saved history, or None if nothing has been saved."""
        ...

    @abc.abstractmethod
    def save(self, history: VersionHistory) -> None:
        ...

    def clear(self) -> None:
        """Forget any saved history. Stores without state need not override."""


class InMemoryHistoryStore(HistoryStore):
    """Keeps the serialized history in memory (tests, embedding)."""

    def __init__(self) -> None:
        self._state: Optional[Dict[str, Any]] = None
        self.save_count = 0

    def load(self) -> Optional[VersionHistory]:
        if self._state is None:
            return None
        return VersionHistory.from_dict(self._state)

    def save(self, history: VersionHistory) -> None:
        self._state = history.to_dict()
        self.save_count += 1

    def clear(self) -> None:
        self._state = None


class JsonFileHistoryStore(HistoryStore):
    """Stores the history as a UTF-8 JSON file.

    RULES:
    - Writes go to a temp file in the same directory, then os.replace()
    - A missing file loads as None; an unreadable one raises HistoryError
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Optional[VersionHistory]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise HistoryError("Cannot read history from {}: {}".format(self.path, exc)) from exc
        history = VersionHistory.from_dict(data)
        logger.info("Loaded %d versions from %s", len(history), self.path)
        return history

    def save(self, history: VersionHistory) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(history.to_dict(), indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d versions to %s", len(history), self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

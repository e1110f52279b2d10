"""Unit tests for the version history and its stores.

WHY: Undo/redo and restart recovery are only useful if the history
behaves like an editor's: a new edit after undo discards the redo
branch, and saved state loads back exactly.

HOW: VersionHistory is exercised directly. JsonFileHistoryStore writes
into pytest's tmp_path; corrupt files must fail loudly with
HistoryError rather than silently starting an empty history.
"""

import json

import pytest

from transcript_reconciler.core.ir import make_separator, make_word
from transcript_reconciler.errors import HistoryError
from transcript_reconciler.history import (
    STATE_FORMAT_VERSION,
    InMemoryHistoryStore,
    JsonFileHistoryStore,
    VersionHistory,
)


def _words(*texts):
    return [make_word(i, text, is_paragraph_start=i == 1) for i, text in enumerate(texts, start=1)]


@pytest.fixture
def history():
    h = VersionHistory()
    h.commit("Pasted Transcript", _words("one"))
    h.commit("Edited", _words("one", "two"))
    h.commit("Edited", _words("one", "two", "three"))
    return h


class TestVersionHistory:

    def test_empty(self):
        h = VersionHistory()
        assert h.current is None
        assert h.current_index == -1
        assert h.working_copy() == []
        assert not h.can_undo and not h.can_redo

    def test_commit_moves_cursor(self, history):
        assert len(history) == 3
        assert history.current_index == 2
        assert history.current.name == "Edited"

    def test_undo_redo(self, history):
        assert [w.display_text for w in history.undo().words] == ["one", "two"]
        assert history.undo().name == "Pasted Transcript"
        assert history.can_redo
        assert len(history.redo().words) == 2

    def test_undo_at_start_is_noop(self, history):
        history.undo()
        history.undo()
        assert history.undo().name == "Pasted Transcript"
        assert history.current_index == 0

    def test_redo_at_end_is_noop(self, history):
        assert history.redo() is history.current
        assert history.current_index == 2

    def test_commit_after_undo_discards_redo(self, history):
        history.undo()
        history.undo()
        history.commit("Edited", _words("uno"))
        assert len(history) == 2
        assert not history.can_redo
        assert [w.display_text for w in history.current.words] == ["uno"]

    def test_replace_resets(self, history):
        history.replace("Uploaded Transcript", _words("fresh"))
        assert len(history) == 1
        assert history.current_index == 0
        assert not history.can_undo

    def test_commit_renumbers(self):
        h = VersionHistory()
        version = h.commit("Edited", [make_word(7, "a"), make_word(9, "b")])
        assert [w.sequence_number for w in version.words] == [1, 2]

    def test_working_copy_is_independent(self, history):
        copy = history.working_copy()
        copy.append(make_word(4, "four"))
        assert len(history.current.words) == 3

    def test_is_dirty(self, history):
        assert not history.is_dirty(_words("one", "two", "three"))
        assert history.is_dirty(_words("one", "two"))
        assert history.is_dirty(_words("one", "two", "3"))

    def test_timing_alone_is_not_dirty(self, history):
        timed = [make_word(w.sequence_number, w.display_text, 1.0, 1.5, None, w.is_paragraph_start)
                 for w in history.current.words]
        assert not history.is_dirty(timed)

    def test_bad_index_rejected(self):
        version = VersionHistory().commit("a", _words("a"))
        with pytest.raises(ValueError):
            VersionHistory([version], 3)


class TestSerialization:

    def test_round_trip(self, history):
        history.undo()
        restored = VersionHistory.from_dict(history.to_dict())
        assert restored.current_index == 1
        assert restored.versions == history.versions

    def test_separator_survives(self):
        h = VersionHistory()
        h.commit("Edited", _words("a") + [make_separator(2)] + _words("b"))
        restored = VersionHistory.from_dict(h.to_dict())
        assert restored.current.words[1].is_separator

    def test_json_serializable(self, history):
        payload = json.loads(json.dumps(history.to_dict()))
        assert payload["format_version"] == STATE_FORMAT_VERSION
        assert len(payload["versions"]) == 3

    @pytest.mark.parametrize("payload", [
        [],
        {"format_version": 99, "current_index": 0, "versions": []},
        {"format_version": STATE_FORMAT_VERSION, "versions": [{"name": "a"}]},
        {"format_version": STATE_FORMAT_VERSION, "current_index": 5,
         "versions": [{"name": "a", "words": []}]},
    ])
    def test_invalid_state(self, payload):
        with pytest.raises(HistoryError):
            VersionHistory.from_dict(payload)


class TestInMemoryHistoryStore:

    def test_load_before_save(self):
        assert InMemoryHistoryStore().load() is None

    def test_save_load_clear(self, history):
        store = InMemoryHistoryStore()
        store.save(history)
        assert store.save_count == 1
        assert store.load().versions == history.versions
        store.clear()
        assert store.load() is None


class TestJsonFileHistoryStore:

    def test_missing_file(self, tmp_path):
        assert JsonFileHistoryStore(tmp_path / "state.json").load() is None

    def test_save_and_load(self, tmp_path, history):
        store = JsonFileHistoryStore(tmp_path / "nested" / "state.json")
        store.save(history)
        loaded = store.load()
        assert loaded.versions == history.versions
        assert loaded.current_index == history.current_index

    def test_no_temp_files_left(self, tmp_path, history):
        store = JsonFileHistoryStore(tmp_path / "state.json")
        store.save(history)
        store.save(history)
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_unicode(self, tmp_path):
        h = VersionHistory()
        h.commit("Edited", _words("Grüße", "naïve"))
        store = JsonFileHistoryStore(tmp_path / "state.json")
        store.save(h)
        assert [w.display_text for w in store.load().current.words] == ["Grüße", "naïve"]

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(HistoryError):
            JsonFileHistoryStore(path).load()

    def test_clear(self, tmp_path, history):
        path = tmp_path / "state.json"
        store = JsonFileHistoryStore(path)
        store.save(history)
        store.clear()
        assert not path.exists()
        store.clear()

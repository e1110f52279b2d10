"""End-to-end tests for the command-line interface.

WHY: Unit tests cover each step in isolation; only a CLI run confirms
the whole pass works from files on disk: read transcript, timings and
diarization, reconcile, and write every output format next to the
transcript.

HOW: Writes the conftest exchange into pytest's tmp_path and calls
main() with an explicit argv. Failures are checked through SystemExit
codes; status output is checked on stderr via capsys.

RULES:
- Status output goes to stderr only; stdout stays empty
- Input problems exit with status 1, argparse usage errors with 2
"""

import json

import pytest

from transcript_reconciler.cli import _resolve_output_path, build_parser, main
from transcript_reconciler.config import (
    ALIGN_CONFIRM_GAP,
    ALIGN_LOOKAHEAD_WINDOW,
    ALIGN_RESYNC_RUN,
)


@pytest.fixture
def workspace(tmp_path, edited_transcript, mfa_words, diarization_turns):
    transcript = tmp_path / "interview.txt"
    transcript.write_text(edited_transcript, encoding="utf-8")
    timings = tmp_path / "timings.json"
    timings.write_text(json.dumps(mfa_words), encoding="utf-8")
    diarization = tmp_path / "speakers.json"
    diarization.write_text(json.dumps(diarization_turns), encoding="utf-8")
    return tmp_path


def _full_run_args(workspace, *extra):
    return [
        str(workspace / "interview.txt"),
        "--timings", str(workspace / "timings.json"),
        "--timing-format", "mfa",
        "--diarization", str(workspace / "speakers.json"),
        *extra,
    ]


class TestFullRun:

    def test_writes_all_formats(self, workspace, capsys):
        main(_full_run_args(workspace))

        text = (workspace / "interview-transcript.txt").read_text(encoding="utf-8")
        assert text == (
            "0.000 SPEAKER_00: How are you?\n\n"
            "1.000 SPEAKER_01: I am really fine, thanks.\n"
        )

        document = json.loads((workspace / "interview-words.json").read_text(encoding="utf-8"))
        assert document["name"] == "MFA Applied"
        assert len(document["words"]) == 8
        assert all(w["start"] is not None for w in document["words"])

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Matched 7/8 words" in captured.err
        assert "Done! Saved 2 file(s)" in captured.err

    def test_single_format(self, workspace):
        main(_full_run_args(workspace, "--formats", "words_json"))
        assert (workspace / "interview-words.json").exists()
        assert not (workspace / "interview-transcript.txt").exists()

    def test_no_interpolation_leaves_inserted_word_untimed(self, workspace):
        main(_full_run_args(workspace, "--no-interpolate", "--formats", "words_json"))
        document = json.loads((workspace / "interview-words.json").read_text(encoding="utf-8"))
        really = [w for w in document["words"] if w["text"] == "really"][0]
        assert really["start"] is None

    def test_conflict_naming(self, workspace):
        main(_full_run_args(workspace))
        main(_full_run_args(workspace))
        assert (workspace / "interview-transcript-2.txt").exists()
        assert (workspace / "interview-words-2.json").exists()

    def test_output_dir(self, workspace):
        out = workspace / "out"
        out.mkdir()
        main(_full_run_args(workspace, "--output-dir", str(out)))
        assert (out / "interview-transcript.txt").exists()

    def test_state_file_records_history(self, workspace):
        state = workspace / "history.json"
        main(_full_run_args(workspace, "--state", str(state)))

        payload = json.loads(state.read_text(encoding="utf-8"))
        names = [version["name"] for version in payload["versions"]]
        assert names == ["Uploaded Transcript", "MFA Applied"]
        assert payload["current_index"] == 1

    def test_diarization_without_timings(self, tmp_path, diarization_turns):
        transcript = tmp_path / "notes.txt"
        transcript.write_text("0.000 How are you?\n\n1.000 I am fine.", encoding="utf-8")
        diarization = tmp_path / "speakers.json"
        diarization.write_text(json.dumps(diarization_turns), encoding="utf-8")

        main([str(transcript), "--diarization", str(diarization), "--formats", "plain_text"])

        assert (tmp_path / "notes-transcript.txt").read_text(encoding="utf-8") == (
            "0.000 SPEAKER_00: How are you?\n\n"
            "1.000 SPEAKER_01: I am fine.\n"
        )


class TestFailures:

    def test_missing_transcript(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path / "nope.txt")])
        assert exc_info.value.code == 1

    def test_timings_need_format(self, workspace, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([str(workspace / "interview.txt"), "--timings", str(workspace / "timings.json")])
        assert exc_info.value.code == 1
        assert "--timing-format" in capsys.readouterr().err

    def test_malformed_timings(self, workspace, capsys):
        (workspace / "timings.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(_full_run_args(workspace))
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err
        assert not (workspace / "interview-transcript.txt").exists()

    def test_unknown_output_format(self, workspace, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(_full_run_args(workspace, "--formats", "docx"))
        assert exc_info.value.code == 1
        assert "Unknown format 'docx'" in capsys.readouterr().err

    def test_unknown_timing_format_is_usage_error(self, workspace):
        with pytest.raises(SystemExit) as exc_info:
            main([str(workspace / "interview.txt"), "--timing-format", "vtt"])
        assert exc_info.value.code == 2

    def test_invalid_window(self, workspace):
        with pytest.raises(SystemExit) as exc_info:
            main(_full_run_args(workspace, "--window", "0"))
        assert exc_info.value.code == 1

    def test_corrupt_state_file(self, workspace):
        state = workspace / "history.json"
        state.write_text("[]", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(_full_run_args(workspace, "--state", str(state)))
        assert exc_info.value.code == 1


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(["interview.txt"])
        assert args.timings is None
        assert args.interpolate is True
        assert args.separators is True
        assert args.state is None
        assert args.window == ALIGN_LOOKAHEAD_WINDOW
        assert args.confirm_gap == ALIGN_CONFIRM_GAP
        assert args.resync_run == ALIGN_RESYNC_RUN

    def test_state_without_value_uses_default_path(self):
        args = build_parser().parse_args(["interview.txt", "--state"])
        assert args.state.endswith(".json")

    def test_resolve_output_path_counter(self, tmp_path):
        (tmp_path / "a-words.json").write_text("{}")
        (tmp_path / "a-words-2.json").write_text("{}")
        assert _resolve_output_path("a", "-words.json", tmp_path).name == "a-words-3.json"

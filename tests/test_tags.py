"""Unit tests for inline tag stripping and reconstruction.

WHY: Tags must leave the word stream before alignment and come back in
the same place afterwards. Losing or moving a speaker tag silently
re-attributes speech; duplicating one corrupts the transcript.

HOW: Builds word sequences that contain tag pseudo-words, checks what
strip_tags() records, and checks reconstruct_tags() both without edits
(exact round trip) and after insertions and deletions.
"""

from transcript_reconciler.core.ir import TagKind, make_word
from transcript_reconciler.core.tags import reconstruct_tags, scan_leading_tags, strip_tags
from transcript_reconciler.ingest.free_text import ingest_free_text


def _tagged_sequence():
    texts = [
        ("0:01.000", True), ("Jane:", False), ("Hello", False), ("world", False),
        ("Bob:", True), ("Hi", False), ("there", False),
    ]
    return [
        make_word(i, text, is_paragraph_start=para)
        for i, (text, para) in enumerate(texts, start=1)
    ]


class TestScanLeadingTags:

    def test_timestamp_and_speaker(self):
        lead = scan_leading_tags(["0:01.000", "Jane:", "Hello"])
        assert lead.consumed == 2
        assert lead.kind == TagKind.BOTH
        assert lead.tag_text == "0:01.000 Jane:"
        assert lead.speaker_label == "Jane"

    def test_nothing_to_scan(self):
        assert scan_leading_tags(["Hello", "world"]) is None
        assert scan_leading_tags([]) is None


class TestStripTags:
    """Pseudo-words removed, positions and anchors recorded."""

    def test_strip(self):
        stripped, tags = strip_tags(_tagged_sequence())

        assert [w.display_text for w in stripped] == ["Hello", "world", "Hi", "there"]
        assert [w.sequence_number for w in stripped] == [1, 2, 3, 4]
        assert [w.is_paragraph_start for w in stripped] == [True, False, True, False]

        assert [(t.word_index_before_tag, t.tag_text, t.kind) for t in tags] == [
            (-1, "0:01.000 Jane:", TagKind.BOTH),
            (1, "Bob:", TagKind.SPEAKER),
        ]
        assert [t.anchor_text for t in tags] == ["hello", "hi"]
        assert all(t.is_paragraph_start for t in tags)

    def test_tags_only_recognised_at_paragraph_start(self):
        words = [
            make_word(1, "We", is_paragraph_start=True),
            make_word(2, "met"),
            make_word(3, "Anna:"),
            make_word(4, "today"),
        ]
        stripped, tags = strip_tags(words)
        assert stripped == words
        assert tags == []

    def test_no_tags(self):
        words = [make_word(1, "plain", is_paragraph_start=True), make_word(2, "text")]
        assert strip_tags(words) == (words, [])


class TestReconstructTags:
    """Monotone anchor mapping back onto the post-alignment sequence."""

    def test_round_trip_without_edits(self):
        words = _tagged_sequence()
        stripped, tags = strip_tags(words)
        assert reconstruct_tags(stripped, tags) == words

    def test_round_trip_with_trailing_tag(self):
        words = [
            make_word(1, "Hello", is_paragraph_start=True),
            make_word(2, "Jane:", is_paragraph_start=True),
        ]
        stripped, tags = strip_tags(words)
        assert [w.display_text for w in stripped] == ["Hello"]
        assert tags[0].anchor_text == ""
        assert reconstruct_tags(stripped, tags) == words

    def test_insertion_before_anchor(self):
        stripped, tags = strip_tags(_tagged_sequence())
        edited = stripped[:2] + [make_word(0, "again")] + stripped[2:]

        rebuilt = reconstruct_tags(edited, tags, original_length=len(stripped))

        texts = [w.display_text for w in rebuilt]
        assert texts == ["0:01.000", "Jane:", "Hello", "world", "again", "Bob:", "Hi", "there"]
        assert [w.sequence_number for w in rebuilt] == list(range(1, 9))

    def test_deleted_anchor_falls_back_to_scaled_position(self):
        stripped, tags = strip_tags(_tagged_sequence())
        edited = [w for w in stripped if w.display_text != "Hi"]

        rebuilt = reconstruct_tags(edited, tags, original_length=len(stripped))

        texts = [w.display_text for w in rebuilt]
        assert texts.count("Bob:") == 1
        assert texts.index("0:01.000") < texts.index("Bob:")
        assert texts[-1] == "there"

    def test_positions_never_move_backwards(self):
        stripped, tags = strip_tags(_tagged_sequence())
        # "hi" now only appears before the first tag's anchor
        edited = [make_word(0, "Hi")] + stripped[:2] + stripped[3:]

        rebuilt = reconstruct_tags(edited, tags, original_length=len(stripped))

        texts = [w.display_text for w in rebuilt]
        assert texts.index("Jane:") < texts.index("Bob:")

    def test_text_tags_come_back_untimed_and_unlabelled(self):
        words, tags = ingest_free_text("0:01.000 Jane: Hello world\n\nBob: Hi there")
        rebuilt = reconstruct_tags(words, tags)
        pseudo = [w for w in rebuilt if w.display_text in ("0:01.000", "Jane:", "Bob:")]
        assert all(w.start_time is None and w.speaker_label is None for w in pseudo)

    def test_tag_only_paragraph_keeps_next_paragraph_start(self):
        words = [
            make_word(1, "Speaker", is_paragraph_start=True),
            make_word(2, "1:"),
            make_word(3, "hello", is_paragraph_start=True),
            make_word(4, "world"),
        ]
        stripped, tags = strip_tags(words)
        assert not tags[0].moved_paragraph
        assert reconstruct_tags(stripped, tags) == words

    def test_tag_words_keep_their_labels_and_times(self):
        words = [
            make_word(1, "Speaker", 0.0, 0.2, "Speaker 1", True),
            make_word(2, "1:", 0.2, 0.3, "Speaker 1"),
            make_word(3, "hello", 0.3, 0.6, "Speaker 1"),
        ]
        stripped, tags = strip_tags(words)
        assert tags[0].moved_paragraph
        assert reconstruct_tags(stripped, tags) == words

    def test_text_tags_follow_blank_lines(self):
        _, inline = ingest_free_text("Anna: Hello\n\nBen:\nHi")
        _, spaced = ingest_free_text("Ben:\n\nHi")
        assert [t.moved_paragraph for t in inline] == [True, True]
        assert [t.moved_paragraph for t in spaced] == [False]

    def test_no_tags_renumbers_only(self):
        words = [make_word(7, "a"), make_word(9, "b")]
        assert [w.sequence_number for w in reconstruct_tags(words, [])] == [1, 2]

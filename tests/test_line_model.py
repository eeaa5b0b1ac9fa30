"""Tests for shared line model construction."""

import pytest
from pydantic import ValidationError

from skipmap.line_model import (
    LineModelBuilder,
    build_lines,
    count_words,
    decode_entities,
    normalize_text,
    preview_text,
    split_speaker,
    total_words,
)


class TestNormalizeText:
    def test_decodes_entities(self):
        """Should decode the supported HTML entities."""
        text = "Tom &amp; Jerry &lt;3 &quot;hi&quot; it&#x27;s it&#39;s a&nbsp;b"
        assert decode_entities(text) == "Tom & Jerry <3 \"hi\" it's it's a b"

    def test_ampersand_decoded_last(self):
        """An escaped entity should decode only once."""
        assert decode_entities("&amp;lt;") == "&lt;"

    def test_collapses_whitespace(self):
        """Should collapse runs of whitespace and trim."""
        assert normalize_text("  one \n\t two   three ") == "one two three"


class TestLineModelBuilder:
    def test_decode_disabled(self):
        """Pre-decoded units keep literal entity text."""
        builder = LineModelBuilder(decode=False)
        line = builder.add("HOST: Type &amp;lt; for a less-than sign.")
        assert line.speaker == "HOST"
        assert line.text == "Type &amp;lt; for a less-than sign."

    def test_decode_enabled_by_default(self):
        assert build_lines(["Salt &amp; pepper, please."])[0].text == "Salt & pepper, please."


class TestSplitSpeaker:
    def test_all_caps_speaker(self):
        """Should capture an all-caps speaker with role."""
        assert split_speaker("DARIAN WOODS, HOST: This is the show.") == (
            "DARIAN WOODS, HOST",
            "This is the show.",
        )

    def test_speaker_with_punctuation(self):
        """Apostrophes, periods and hyphens belong to the speaker."""
        speaker, text = split_speaker("MARY O'NEIL-SMITH JR.: Hello there")
        assert speaker == "MARY O'NEIL-SMITH JR."
        assert text == "Hello there"

    def test_mixed_case_is_not_a_speaker(self):
        """Mixed-case prefixes are content, not speakers."""
        assert split_speaker("Note: this is content") == ("", "Note: this is content")

    def test_no_colon(self):
        """Text without a colon has no speaker."""
        assert split_speaker("JUST SHOUTING") == ("", "JUST SHOUTING")


class TestBuildLines:
    def test_numbering_and_cumulative_counts(self):
        """Line numbers and running word counts should be sequential."""
        lines = build_lines(["HOST: one two three", "four five", "GUEST: six"])

        assert [l.line_number for l in lines] == [1, 2, 3]
        assert [l.word_count for l in lines] == [3, 2, 1]
        assert [l.cumulative_word_count for l in lines] == [3, 5, 6]
        assert [l.speaker for l in lines] == ["HOST", "", "GUEST"]

    def test_prefix_sum_invariant(self):
        """Cumulative counts should equal the prefix sum of word counts."""
        lines = build_lines([f"Line number {i} " + "word " * i for i in range(1, 20)])
        running = 0
        for line in lines:
            running += line.word_count
            assert line.cumulative_word_count == running

    def test_discards_short_units(self):
        """Units under three characters should be dropped without using a number."""
        lines = build_lines(["ok", "  ", "Real content here"])
        assert len(lines) == 1
        assert lines[0].line_number == 1

    def test_discards_speaker_only_units(self):
        """A unit that is only a speaker tag has no content."""
        lines = build_lines(["HOST:", "HOST: hello world"])
        assert len(lines) == 1
        assert lines[0].text == "hello world"

    def test_explicit_speaker_bypasses_detection(self):
        """An explicit speaker should be used as given."""
        builder = LineModelBuilder()
        line = builder.add("NOT A SPEAKER: still content", speaker="Alice")
        assert line.speaker == "Alice"
        assert line.text == "NOT A SPEAKER: still content"

    def test_lines_are_immutable(self):
        """Lines should not be modifiable after construction."""
        line = build_lines(["Some spoken words"])[0]
        with pytest.raises(ValidationError):
            line.text = "changed"


class TestHelpers:
    def test_count_words(self):
        assert count_words("  a  b\tc\nd ") == 4
        assert count_words("") == 0

    def test_total_words(self):
        assert total_words([]) == 0
        assert total_words(build_lines(["one two", "three"])) == 3

    def test_preview_text(self):
        """Should join in-range texts and cap the length."""
        lines = build_lines(["first line", "second line", "third line"])
        assert preview_text(lines, 2, 3) == "second line third line"
        long_lines = build_lines(["word " * 100])
        assert len(preview_text(long_lines, 1, 1)) == 200

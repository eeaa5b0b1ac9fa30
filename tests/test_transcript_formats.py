"""Tests for transcript format builders."""

import json

import pytest

from skipmap.models import SpeechSegment, SpeechTranscription
from skipmap.transcript_formats import (
    UnsupportedFormat,
    build_speech_lines,
    detect_format,
    format_rank,
    guess_mime_type,
    isolate_transcript_section,
    parse_html_transcript,
    parse_json_cues,
    parse_json_cues_strict,
    parse_plain_text,
    parse_srt,
    parse_transcript_file,
    parse_vtt,
)


class TestHtmlTranscript:
    def test_sample_transcript(self, sample_html):
        """The sample page should yield 24 speaker-attributed lines."""
        lines = parse_html_transcript(sample_html)

        assert len(lines) == 24
        assert lines[0].speaker == "DARIAN WOODS, HOST"
        assert lines[0].text.startswith("This is THE INDICATOR")
        assert lines[22].speaker == "DARIAN WOODS"
        assert lines[22].text == "Pun intended."
        assert all(line.speaker for line in lines)
        assert lines[4].text.startswith("Support for this podcast")

    def test_classed_container_preferred_over_page(self):
        """Paragraphs outside the transcript container are ignored."""
        paragraphs = "".join(f"<p>HOST: Spoken paragraph number {i} here.</p>" for i in range(5))
        html = f"""
        <html><body>
          <p>Sidebar text that is not part of the story at all.</p>
          <div class="storytext">{paragraphs}</div>
        </body></html>
        """
        lines = parse_html_transcript(html)
        assert len(lines) == 5
        assert all(line.speaker == "HOST" for line in lines)

    def test_small_container_falls_through_to_article(self):
        """A classed container with too few paragraphs is not used."""
        html = """
        <div class="transcript"><p>Only one paragraph in here.</p></div>
        <article><p>First article paragraph text.</p><p>Second article paragraph text.</p></article>
        """
        texts = isolate_transcript_section(html)
        assert texts == ["First article paragraph text.", "Second article paragraph text."]

    def test_element_by_id(self):
        """An element with id transcript is used when nothing else matches."""
        html = """
        <p>Outside text paragraph.</p>
        <section id="transcript"><p>Inside paragraph one.</p><p>Inside paragraph two.</p></section>
        """
        assert isolate_transcript_section(html) == ["Inside paragraph one.", "Inside paragraph two."]

    def test_speaker_bounded_span(self):
        """Without containers, paragraphs between bold speaker tags are used."""
        html = """
        <p>Navigation paragraph before.</p>
        <p><b>HOST:</b> First spoken line of the show.</p>
        <p>An untagged continuation paragraph.</p>
        <p><strong>GUEST:</strong> Second spoken line here.</p>
        <p><b>HOST:</b> Third spoken line to close.</p>
        <p>Footer paragraph after the transcript.</p>
        """
        lines = parse_html_transcript(html)
        assert [line.text for line in lines] == [
            "First spoken line of the show.",
            "An untagged continuation paragraph.",
            "Second spoken line here.",
            "Third spoken line to close.",
        ]

    def test_chrome_filtered(self):
        """Page chrome inside the section is dropped."""
        html = """
        <article>
          <p>Skip to main content</p>
          <p>HOST: Welcome to the show, today we talk about eggs.</p>
          <p>Justin Sullivan/Getty Images hide caption</p>
          <p>Copyright © 2025 NPR. All rights reserved.</p>
          <p>GUEST: Thanks for having me on the program today.</p>
        </article>
        """
        lines = parse_html_transcript(html)
        assert [line.speaker for line in lines] == ["HOST", "GUEST"]

    def test_scripts_removed(self):
        """Script contents never become lines."""
        html = "<article><script>var x = 1;</script><p>Spoken words in the article.</p></article>"
        lines = parse_html_transcript(html)
        assert len(lines) == 1

    def test_breaks_and_entities(self):
        """Line breaks become spaces and entities are decoded."""
        html = "<article><p>HOST: Salt &amp; pepper<br/>on the eggs, please.</p></article>"
        lines = parse_html_transcript(html)
        assert lines[0].text == "Salt & pepper on the eggs, please."

    def test_entities_decoded_once(self):
        """Text that reads as escaped markup on the page keeps its entities."""
        html = "<article><p>The literal markup &amp;lt;b&amp;gt; appears in this sentence.</p></article>"
        lines = parse_html_transcript(html)
        assert lines[0].text == "The literal markup &lt;b&gt; appears in this sentence."


SRT_SAMPLE = """1
00:00:01,000 --> 00:00:04,000
HOST: Welcome to the show.

2
00:00:04,500 --> 00:00:08,000
<v Jane Doe>Thanks for having me.

3
00:00:08,500 --> 00:00:10,000
This line has
two text lines.
"""


class TestSrt:
    def test_parses_cues(self):
        """Index and timing lines are dropped, text lines joined."""
        lines = parse_srt(SRT_SAMPLE)
        assert [line.text for line in lines] == [
            "Welcome to the show.",
            "Thanks for having me.",
            "This line has two text lines.",
        ]

    def test_speakers(self):
        """All-caps tags and voice tags both give speakers."""
        lines = parse_srt(SRT_SAMPLE)
        assert [line.speaker for line in lines] == ["HOST", "Jane Doe", ""]

    def test_windows_line_endings(self):
        """CRLF input parses the same."""
        assert len(parse_srt(SRT_SAMPLE.replace("\n", "\r\n"))) == 3

    def test_empty(self):
        assert parse_srt("") == []


VTT_SAMPLE = """WEBVTT
Kind: captions
Language: en

NOTE This is a comment block

intro
00:00:01.000 --> 00:00:04.000
<v.loud Roger>Hello <i>everyone</i> out there.

00:00:04.500 --> 00:00:08.000 align:start
HOST: Back to the news.

00:00:08.500 --> 00:00:10.000
<b>Just</b> a plain cue.
"""


class TestVtt:
    def test_parses_cues(self):
        """Header, note and cue identifiers are skipped; markup is stripped."""
        lines = parse_vtt(VTT_SAMPLE)
        assert [line.text for line in lines] == [
            "Hello everyone out there.",
            "Back to the news.",
            "Just a plain cue.",
        ]

    def test_speakers(self):
        """Voice tags with classes and all-caps tags give speakers."""
        lines = parse_vtt(VTT_SAMPLE)
        assert [line.speaker for line in lines] == ["Roger", "HOST", ""]


class TestJsonCues:
    def test_podcast_namespace_segments(self):
        """Podcast 2.0 segments use body and speaker fields."""
        data = {
            "version": "1.0.0",
            "segments": [
                {"speaker": "Alice", "startTime": 0.5, "endTime": 2.0, "body": "Hello and welcome."},
                {"speaker": "Bob", "startTime": 2.0, "endTime": 3.5, "body": "Glad to be here."},
            ],
        }
        lines = parse_json_cues(json.dumps(data))
        assert [(l.speaker, l.text) for l in lines] == [
            ("Alice", "Hello and welcome."),
            ("Bob", "Glad to be here."),
        ]

    def test_explicit_speaker_bypasses_tag(self):
        """An explicit speaker field wins over an all-caps prefix."""
        data = {"cues": [{"voice": "Carol", "text": "NOTE: this stays in the text"}]}
        line = parse_json_cues(json.dumps(data))[0]
        assert line.speaker == "Carol"
        assert line.text == "NOTE: this stays in the text"

    def test_root_array_and_content_field(self):
        """A root array with content fields is accepted; tags detected without speaker."""
        data = [{"content": "HOST: Top of the hour."}, {"text": "No speaker here."}, "ignored"]
        lines = parse_json_cues(json.dumps(data))
        assert [(l.speaker, l.text) for l in lines] == [
            ("HOST", "Top of the hour."),
            ("", "No speaker here."),
        ]

    def test_transcript_key(self):
        data = {"transcript": [{"body": "Under the transcript key."}]}
        assert len(parse_json_cues(json.dumps(data))) == 1

    def test_malformed_json_is_empty(self):
        """The lenient parser returns no lines for malformed JSON."""
        assert parse_json_cues("{not json") == []

    def test_strict_raises_on_malformed(self):
        with pytest.raises(UnsupportedFormat):
            parse_json_cues_strict("{not json")

    def test_strict_raises_without_cues(self):
        """An object without a cue array is unsupported."""
        with pytest.raises(UnsupportedFormat, match="No cue array"):
            parse_json_cues_strict(json.dumps({"title": "nothing"}))


class TestSpeechLines:
    def test_segments(self):
        """Each segment becomes a line; timings are not kept."""
        result = SpeechTranscription(
            text="ignored",
            segments=[
                SpeechSegment(start=0.0, end=2.0, text=" HOST: Good morning. "),
                SpeechSegment(start=2.0, end=5.0, text="Here is the news."),
            ],
        )
        lines = build_speech_lines(result)
        assert [(l.speaker, l.text) for l in lines] == [
            ("HOST", "Good morning."),
            ("", "Here is the news."),
        ]

    def test_sentence_split_without_segments(self):
        """Without segments the text is split into sentences."""
        result = SpeechTranscription(text="First one. Second one! Third one? Yes")
        lines = build_speech_lines(result)
        assert [l.text for l in lines] == ["First one.", "Second one!", "Third one?", "Yes"]


class TestDispatch:
    def test_detect_format(self):
        assert detect_format("application/x-subrip") == "srt"
        assert detect_format("text/vtt; charset=utf-8") == "vtt"
        assert detect_format("APPLICATION/JSON") == "json"
        assert detect_format("text/html") == "html"
        assert detect_format("audio/mpeg") is None

    def test_format_rank_order(self):
        """SRT beats VTT beats JSON beats HTML beats text; unknown is last."""
        types = ["text/plain", "audio/mpeg", "application/json", "text/html", "text/vtt", "application/x-subrip"]
        ranked = sorted(types, key=format_rank)
        assert ranked == ["application/x-subrip", "text/vtt", "application/json", "text/html", "text/plain", "audio/mpeg"]

    def test_parse_transcript_file(self):
        lines = parse_transcript_file(SRT_SAMPLE, "application/x-subrip")
        assert len(lines) == 3

    def test_plain_text(self):
        lines = parse_plain_text("HOST: Line one here.\n\nLine two here.\n")
        assert [l.text for l in lines] == ["Line one here.", "Line two here."]

    def test_unknown_type(self):
        with pytest.raises(UnsupportedFormat):
            parse_transcript_file("data", "audio/mpeg")

    def test_guess_mime_type(self):
        assert guess_mime_type("https://example.com/ep1.srt?token=abc") == "application/x-subrip"
        assert guess_mime_type("transcript.VTT") == "text/vtt"
        assert guess_mime_type("episode.mp3") is None

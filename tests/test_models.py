"""Tests for Pydantic data models."""

import json

import pytest
from pydantic import ValidationError

from skipmap.models import (
    AdBlock,
    EpisodeRequest,
    LocatorResult,
    SkipSegment,
    TranscriptFile,
    TranscriptLine,
)


class TestTranscriptLine:
    def test_create_line(self):
        line = TranscriptLine(
            line_number=1,
            speaker="HOST",
            text="Hello world",
            word_count=2,
            cumulative_word_count=2,
        )
        assert line.line_number == 1
        assert line.speaker == "HOST"

    def test_line_numbers_start_at_one(self):
        with pytest.raises(ValidationError):
            TranscriptLine(line_number=0, text="x", word_count=1, cumulative_word_count=1)

    def test_frozen(self):
        line = TranscriptLine(line_number=1, text="x", word_count=1, cumulative_word_count=1)
        with pytest.raises(ValidationError):
            line.word_count = 5


class TestAdBlock:
    def test_defaults(self):
        """Word and time fields start empty until mapping."""
        block = AdBlock(start_line=3, end_line=4, reason="Sponsor read")
        assert block.confidence == 0.9
        assert block.start_word == block.end_word == 0
        assert block.start_time_sec == block.end_time_sec == 0.0

    def test_json_serialization(self):
        block = AdBlock(start_line=3, end_line=4, reason="Sponsor read", start_time_sec=12.5)
        data = json.loads(block.model_dump_json())
        assert data["start_line"] == 3
        assert data["start_time_sec"] == 12.5


class TestSkipSegment:
    def test_default_type(self):
        segment = SkipSegment(start_time=10, end_time=20, confidence=0.6, reason="ad")
        assert segment.type == "mid-roll"

    def test_invalid_type(self):
        with pytest.raises(ValidationError):
            SkipSegment(start_time=10, end_time=20, type="half-roll", confidence=0.6, reason="ad")

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            SkipSegment(start_time=10, end_time=20, confidence=1.5, reason="ad")


class TestEpisodeRequest:
    def test_from_json(self):
        """Episode files use the model field names."""
        episode = EpisodeRequest.model_validate_json(json.dumps({
            "title": "Eggs",
            "duration_sec": 502,
            "transcript_files": [{"url": "https://example.com/t.srt", "type": "application/x-subrip"}],
        }))
        assert episode.duration_sec == 502.0
        assert episode.transcript_files == [
            TranscriptFile(url="https://example.com/t.srt", type="application/x-subrip")
        ]
        assert episode.audio_url is None

    def test_defaults_not_shared(self):
        first = EpisodeRequest()
        first.transcript_files.append(TranscriptFile(url="u", type="text/vtt"))
        assert EpisodeRequest().transcript_files == []


class TestLocatorResult:
    def test_defaults(self):
        result = LocatorResult(strategy="heuristic")
        assert result.blocks == []
        assert result.error is None

"""Pydantic data models for skipmap."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class TranscriptLine(BaseModel):
    """One attributable unit of spoken content in the line model."""

    line_number: int = Field(ge=1)
    speaker: str = ""
    text: str
    word_count: int = Field(ge=0)
    cumulative_word_count: int = Field(ge=0)

    model_config = {"frozen": True}


class AdBlock(BaseModel):
    """A contiguous line range believed to be non-editorial."""

    start_line: int
    end_line: int
    reason: str
    text_preview: str = ""
    confidence: float = 0.9
    # Filled in by the timestamp mapper
    start_word: int = 0
    end_word: int = 0
    start_time_sec: float = 0.0
    end_time_sec: float = 0.0


SkipType = Literal["pre-roll", "mid-roll", "post-roll"]


class SkipSegment(BaseModel):
    """A time range a playback client should skip."""

    start_time: float
    end_time: float
    type: SkipType = "mid-roll"
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str


class ValidationDetails(BaseModel):
    """Numbers behind a transcript quality verdict."""

    line_count: int
    total_words: int
    lines_with_speaker: int
    expected_min_words: int
    avg_words_per_line: float


class ValidationResult(BaseModel):
    """Advisory verdict on whether a line model looks like a real transcript."""

    is_valid: bool
    reason: str
    details: ValidationDetails


class SpeechSegment(BaseModel):
    """A timed segment returned by a speech-to-text service."""

    start: float
    end: float
    text: str


class SpeechTranscription(BaseModel):
    """Result of a speech-to-text call."""

    text: str
    segments: list[SpeechSegment] = []
    duration: Optional[float] = None


class TranscriptFile(BaseModel):
    """A structured transcript advertised in feed metadata."""

    url: str
    type: str


class EpisodeRequest(BaseModel):
    """Everything the orchestrator needs to analyze one episode."""

    title: str = ""
    description: str = ""
    duration_sec: float = 0.0
    audio_url: Optional[str] = None
    transcript_url: Optional[str] = None
    transcript_files: list[TranscriptFile] = []


class LLMUsage(BaseModel):
    """Token accounting reported by a provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMCompletion(BaseModel):
    """Provider-neutral text completion."""

    content: str
    finish_reason: Optional[str] = None
    usage: LLMUsage = LLMUsage()


class LocatorResult(BaseModel):
    """Ad blocks from one locator run, with how they were found."""

    blocks: list[AdBlock] = []
    strategy: str
    llm_response: Optional[str] = None
    error: Optional[str] = None


class AnalysisSummary(BaseModel):
    """Totals over the located ad blocks."""

    total_ad_blocks: int
    total_ad_words: int
    total_ad_time_sec: float
    content_time_sec: float
    ad_word_percent: float
    strategy: str


class AnalysisQA(BaseModel):
    """Sanity numbers comparing transcript length with audio length."""

    expected_speech_sec: float
    implied_ad_time_sec: float
    speech_rate_wpm: float
    audio_duration_sec: float
    transcript_words: int
    lines_with_speaker: int
    lines_without_speaker: int


TranscriptSource = Literal["audio", "srt", "vtt", "json", "html", "text", "placeholder"]


class AnalysisReport(BaseModel):
    """Complete result of analyzing one episode."""

    title: str
    duration_sec: float
    transcript_source: TranscriptSource
    lines: list[TranscriptLine]
    validation: ValidationResult
    ad_blocks: list[AdBlock]
    skip_map: list[SkipSegment]
    summary: AnalysisSummary
    qa: AnalysisQA
    strategy: str
    llm_response: Optional[str] = None
    source_errors: list[str] = []

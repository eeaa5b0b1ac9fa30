"""Pipeline orchestration: source selection through skip map.

Sources are tried concurrently with bounded fan-out and consumed in
preference order: audio transcription, structured transcript files (SRT,
VTT, JSON), the HTML transcript page, plain text, and finally a one-line
placeholder built from episode metadata. Every stage degrades instead of
failing; the report records what happened.
"""

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, NamedTuple, Optional

import httpx
from bs4 import BeautifulSoup

from .ad_llm import AdapterFactory, build_provider_registry, create_completion_adapter, locate_ad_blocks
from .ad_timestamps import build_skip_map, map_blocks_to_timestamps
from .config import Config
from .external_transcript import (
    FetchError,
    create_http_client,
    fetch_transcript_file,
    fetch_transcript_page,
    order_transcript_files,
)
from .line_model import build_lines, collapse_whitespace, normalize_text, total_words
from .models import (
    AdBlock,
    AnalysisQA,
    AnalysisReport,
    AnalysisSummary,
    EpisodeRequest,
    SpeechTranscription,
    TranscriptFile,
    TranscriptLine,
    TranscriptSource,
)
from .transcribe import SpeechTranscriber, TranscriptionError, transcribe_url
from .transcript_formats import (
    FORMAT_PREFERENCE,
    UnsupportedFormat,
    build_speech_lines,
    detect_format,
    parse_html_transcript,
    parse_transcript_file,
)
from .validator import validate_transcript

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]  # Called with (step, message)

PLACEHOLDER_TEXT = "Untitled episode"


class SourceAttempt(NamedTuple):
    """Outcome of trying one transcript source."""

    source: TranscriptSource
    label: str
    lines: list[TranscriptLine]
    error: Optional[str] = None


def build_placeholder_lines(title: str, description: str) -> list[TranscriptLine]:
    """One-line transcript from episode metadata, used when every source fails."""
    title = normalize_text(title)
    description = collapse_whitespace(BeautifulSoup(description, "html.parser").get_text(" ")) if description else ""

    if title and description:
        text = f"{title}. {description}"
    else:
        text = title or description

    lines = build_lines([text], decode=False) if text else []
    return lines or build_lines([PLACEHOLDER_TEXT])


def summarize(blocks: list[AdBlock], lines: list[TranscriptLine], duration: float, strategy: str) -> AnalysisSummary:
    """Totals over mapped ad blocks."""
    words = total_words(lines)
    ad_words = sum(block.end_word - block.start_word for block in blocks)
    ad_time = sum(block.end_time_sec - block.start_time_sec for block in blocks)

    return AnalysisSummary(
        total_ad_blocks=len(blocks),
        total_ad_words=ad_words,
        total_ad_time_sec=round(ad_time, 1),
        content_time_sec=round(max(0.0, duration - ad_time), 1),
        ad_word_percent=round(ad_words / words * 100, 1) if words else 0.0,
        strategy=strategy,
    )


def quality_check(lines: list[TranscriptLine], duration: float, words_per_minute: float) -> AnalysisQA:
    """Compare transcript length with audio length."""
    words = total_words(lines)
    expected_speech = words / words_per_minute * 60 if words_per_minute > 0 else 0.0
    with_speaker = sum(1 for line in lines if line.speaker)

    return AnalysisQA(
        expected_speech_sec=round(expected_speech, 1),
        implied_ad_time_sec=round(max(0.0, duration - expected_speech), 1),
        speech_rate_wpm=round(words / (duration / 60), 1) if duration > 0 else 0.0,
        audio_duration_sec=duration,
        transcript_words=words,
        lines_with_speaker=with_speaker,
        lines_without_speaker=len(lines) - with_speaker,
    )


class AnalysisPipeline:
    """Runs one episode through source selection, ad location and mapping."""

    def __init__(
        self,
        config: Config,
        providers: dict[str, AdapterFactory] | None = None,
        transcriber: SpeechTranscriber | None = None,
        http_client: httpx.Client | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Configuration object.
            providers: LLM provider registry; defaults to ``build_provider_registry()``.
            transcriber: Speech-to-text backend; audio is skipped without one.
            http_client: Shared HTTP client for transcript fetches.
            progress_callback: Optional callback called with (step, message).
        """
        self.config = config
        self.providers = providers if providers is not None else build_provider_registry()
        self.transcriber = transcriber
        self.http_client = http_client
        self.progress_callback = progress_callback

    def _progress(self, step: str, message: str) -> None:
        logger.info(f"[{step}] {message}")
        if self.progress_callback:
            self.progress_callback(step, message)

    # Sources

    def _transcribe_audio(self, url: str) -> SpeechTranscription:
        return transcribe_url(url, self.transcriber, self.config.transcription, self.config.fetch)

    def _fetch_file(self, client: httpx.Client, transcript_file: TranscriptFile) -> list[TranscriptLine]:
        content = fetch_transcript_file(client, transcript_file)
        return parse_transcript_file(content, transcript_file.type)

    def _fetch_page(self, client: httpx.Client, url: str) -> list[TranscriptLine]:
        return parse_html_transcript(fetch_transcript_page(client, url))

    def gather_text_sources(self, episode: EpisodeRequest) -> list[SourceAttempt]:
        """Fetch structured files and the transcript page with bounded concurrency.

        Returns:
            One attempt per source, in preference order.
        """
        files = order_transcript_files(episode.transcript_files)
        html_rank = FORMAT_PREFERENCE.index("html")

        if not files and not episode.transcript_url:
            return []

        client = self.http_client or create_http_client(self.config.fetch)
        timeout = self.config.fetch.timeout
        pending: list[tuple[int, TranscriptSource, str, Future]] = []

        executor = ThreadPoolExecutor(
            max_workers=self.config.fetch.max_concurrency,
            thread_name_prefix="skipmap-fetch",
        )
        try:
            for transcript_file in files:
                fmt = detect_format(transcript_file.type)
                pending.append((
                    FORMAT_PREFERENCE.index(fmt),
                    fmt,
                    transcript_file.url,
                    executor.submit(self._fetch_file, client, transcript_file),
                ))
            if episode.transcript_url:
                pending.append((
                    html_rank,
                    "html",
                    episode.transcript_url,
                    executor.submit(self._fetch_page, client, episode.transcript_url),
                ))

            # Stable sort keeps feed order within a format; the page follows html files
            pending.sort(key=lambda p: p[0])

            attempts: list[SourceAttempt] = []
            for _, source, url, future in pending:
                try:
                    lines = future.result(timeout=timeout * 2)
                except FutureTimeoutError:
                    attempts.append(SourceAttempt(source, url, [], f"{source} {url}: timed out"))
                    continue
                except (FetchError, UnsupportedFormat) as e:
                    attempts.append(SourceAttempt(source, url, [], f"{source} {url}: {e}"))
                    continue
                if not lines:
                    attempts.append(SourceAttempt(source, url, [], f"{source} {url}: no transcript lines"))
                    continue
                attempts.append(SourceAttempt(source, url, lines))
            return attempts
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            if self.http_client is None:
                client.close()

    def select_transcript(self, episode: EpisodeRequest) -> tuple[SourceAttempt, float, list[str]]:
        """Pick the best transcript source for an episode.

        Audio transcription and text-source gathering run concurrently.

        Returns:
            A tuple of (chosen attempt, duration reported by transcription or
            0.0, one error string per failed source).
        """
        errors: list[str] = []
        audio_duration = 0.0

        use_audio = bool(
            episode.audio_url and self.transcriber is not None and self.config.transcription.enabled
        )

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="skipmap-source")
        try:
            audio_future = executor.submit(self._transcribe_audio, episode.audio_url) if use_audio else None
            text_future = executor.submit(self.gather_text_sources, episode)

            if audio_future is not None:
                self._progress("transcribe", f"Transcribing audio from {episode.audio_url}")
                try:
                    transcription = audio_future.result(timeout=self.config.transcription.timeout)
                    audio_duration = transcription.duration or 0.0
                    lines = build_speech_lines(transcription)
                    if lines:
                        return SourceAttempt("audio", episode.audio_url, lines), audio_duration, errors
                    errors.append("audio: transcription produced no lines")
                except FutureTimeoutError:
                    errors.append(f"audio: timed out after {self.config.transcription.timeout:.0f}s")
                except TranscriptionError as e:
                    errors.append(f"audio: {e}")
                logger.warning(f"Audio transcription unavailable: {errors[-1]}")

            self._progress("fetch", "Fetching transcript files and page")
            attempts = text_future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        for attempt in attempts:
            if attempt.lines:
                return attempt, audio_duration, errors
            errors.append(attempt.error or f"{attempt.source}: no transcript lines")
            logger.warning(f"Transcript source failed: {errors[-1]}")

        logger.warning("All transcript sources failed, using placeholder from episode metadata")
        placeholder = SourceAttempt(
            "placeholder", "metadata", build_placeholder_lines(episode.title, episode.description)
        )
        return placeholder, audio_duration, errors

    # Analysis

    def analyze_transcript(
        self,
        lines: list[TranscriptLine],
        duration: float,
        title: str = "",
        source: TranscriptSource = "text",
        source_errors: list[str] | None = None,
    ) -> AnalysisReport:
        """Validate, locate ads, map timestamps and assemble the report.

        Args:
            lines: The line model.
            duration: Audio duration in seconds; 0 if unknown.
            title: Episode title, used in the LLM prompt.
            source: Where the lines came from.
            source_errors: Failures recorded while selecting the source.

        Returns:
            The complete analysis report.
        """
        if not math.isfinite(duration) or duration < 0:
            logger.warning(f"Ignoring unusable duration {duration!r}")
            duration = 0.0
        self._progress("validate", f"Validating {len(lines)} lines")
        validation = validate_transcript(lines, duration, self.config.validation)
        if not validation.is_valid:
            logger.warning(f"Transcript validation failed: {validation.reason}")

        adapter = create_completion_adapter(self.config.llm, self.providers)
        self._progress("detect", "Locating ad blocks" + (" with LLM" if adapter else " heuristically"))
        located = locate_ad_blocks(lines, adapter, title, self.config.llm.max_transcript_chars)

        self._progress("map", f"Mapping {len(located.blocks)} ad blocks to timestamps")
        blocks = map_blocks_to_timestamps(located.blocks, lines, duration)
        skip_map = build_skip_map(blocks, duration)

        errors = list(source_errors or [])
        if located.error:
            errors.append(f"llm: {located.error}")

        report = AnalysisReport(
            title=title,
            duration_sec=duration,
            transcript_source=source,
            lines=lines,
            validation=validation,
            ad_blocks=blocks,
            skip_map=skip_map,
            summary=summarize(blocks, lines, duration, located.strategy),
            qa=quality_check(lines, duration, self.config.validation.words_per_minute),
            strategy=located.strategy,
            llm_response=located.llm_response,
            source_errors=errors,
        )
        self._progress("done", f"{len(skip_map)} skip segments from {source} transcript")
        return report

    def analyze(self, episode: EpisodeRequest) -> AnalysisReport:
        """Analyze one episode end to end.

        Args:
            episode: Episode metadata and source URLs.

        Returns:
            The analysis report; never fails for source, LLM or parse errors.
        """
        self._progress("start", f"Analyzing {episode.title or 'untitled episode'}")
        attempt, audio_duration, errors = self.select_transcript(episode)
        self._progress("transcript", f"Using {attempt.source} transcript ({len(attempt.lines)} lines)")

        duration = episode.duration_sec or audio_duration
        if not episode.duration_sec and audio_duration:
            logger.info(f"Using duration from audio: {audio_duration:.0f}s")

        return self.analyze_transcript(
            attempt.lines,
            duration,
            title=episode.title,
            source=attempt.source,
            source_errors=errors,
        )

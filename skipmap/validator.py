"""Transcript quality check.

Scraped pages sometimes yield navigation text or whole page sections
instead of spoken paragraphs. The check is advisory: callers log the
verdict and carry on with whatever was parsed.
"""

import math

from .config import ValidationConfig
from .line_model import total_words
from .models import TranscriptLine, ValidationDetails, ValidationResult

# Used when the audio duration is unknown
DEFAULT_MIN_WORDS = 100


def expected_min_words(duration_sec: float, settings: ValidationConfig) -> int:
    """Minimum plausible word count for ``duration_sec`` of speech."""
    if not math.isfinite(duration_sec) or duration_sec <= 0:
        return DEFAULT_MIN_WORDS
    return math.floor((duration_sec / 60) * settings.words_per_minute * settings.min_word_ratio)


def validate_transcript(
    lines: list[TranscriptLine],
    duration_sec: float,
    settings: ValidationConfig | None = None,
) -> ValidationResult:
    """Judge whether a line model is plausibly a real spoken transcript.

    Checks, in priority order: too few lines, too few words for the audio
    length, and an average line length that suggests unfiltered page
    sections. Never raises.

    Args:
        lines: The line model.
        duration_sec: Expected audio duration; 0 if unknown.
        settings: Thresholds; defaults to ``ValidationConfig()``.

    Returns:
        The verdict with a human-readable reason and the numbers behind it.
    """
    settings = settings or ValidationConfig()

    line_count = len(lines)
    words = total_words(lines)
    min_words = expected_min_words(duration_sec, settings)
    avg = words / line_count if line_count else 0.0

    details = ValidationDetails(
        line_count=line_count,
        total_words=words,
        lines_with_speaker=sum(1 for line in lines if line.speaker),
        expected_min_words=min_words,
        avg_words_per_line=round(avg, 1),
    )

    if line_count < settings.min_lines:
        reason = f"Too few lines parsed: {line_count} (need at least {settings.min_lines})"
        return ValidationResult(is_valid=False, reason=reason, details=details)

    if words < min_words:
        reason = (
            f"Insufficient words: {words} words, expected at least {min_words} "
            f"for {duration_sec:.0f}s of audio"
        )
        return ValidationResult(is_valid=False, reason=reason, details=details)

    if line_count > settings.min_lines and avg > settings.max_avg_words_per_line:
        reason = (
            f"Average of {avg:.0f} words per line exceeds {settings.max_avg_words_per_line:.0f}; "
            "page sections were likely captured instead of transcript paragraphs"
        )
        return ValidationResult(is_valid=False, reason=reason, details=details)

    return ValidationResult(
        is_valid=True,
        reason=f"{line_count} lines, {words} words",
        details=details,
    )

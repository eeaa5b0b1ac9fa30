"""Audio duration helpers for skipmap."""

import json
import logging
import math
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class AudioError(Exception):
    """Error related to audio processing."""

    pass


def parse_duration(value: str | int | float | None) -> float:
    """Parse a feed duration into seconds.

    Accepts "HH:MM:SS", "MM:SS", or a raw number of seconds.

    Args:
        value: Duration as found in feed metadata.

    Returns:
        Duration in seconds, or 0.0 if empty or unparseable.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        seconds = float(value)
        return seconds if math.isfinite(seconds) and seconds > 0 else 0.0

    text = value.strip()
    if not text:
        return 0.0

    parts = text.split(":")
    if len(parts) > 3:
        return 0.0

    try:
        numbers = [float(part) for part in parts]
    except ValueError:
        logger.debug(f"Unparseable duration: {value!r}")
        return 0.0

    if any(n < 0 for n in numbers):
        return 0.0

    seconds = 0.0
    for n in numbers:
        seconds = seconds * 60 + n
    if not math.isfinite(seconds):
        logger.debug(f"Non-finite duration: {value!r}")
        return 0.0
    return seconds


def get_duration(path: str) -> float:
    """Get the duration of an audio file in seconds using ffprobe.

    Args:
        path: Path to the audio file.

    Returns:
        Duration in seconds.

    Raises:
        AudioError: If the file doesn't exist, isn't readable, or ffprobe fails.
    """
    audio_path = Path(path)

    if not audio_path.exists():
        raise AudioError(f"File not found: {path}")

    if not audio_path.is_file():
        raise AudioError(f"Not a file: {path}")

    try:
        result = subprocess.run(
            [
                "ffprobe",
                "-v",
                "quiet",
                "-print_format",
                "json",
                "-show_format",
                str(audio_path),
            ],
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError:
        raise AudioError(
            "ffprobe not found. Please install ffmpeg: https://ffmpeg.org/download.html"
        )
    except subprocess.CalledProcessError as e:
        raise AudioError(f"ffprobe failed: {e.stderr}")

    try:
        data = json.loads(result.stdout)
        duration = float(data["format"]["duration"])
    except (json.JSONDecodeError, KeyError, ValueError) as e:
        raise AudioError(f"Failed to parse ffprobe output: {e}")

    return duration

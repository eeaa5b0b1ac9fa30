"""Speech-to-text using faster-whisper.

The engine treats transcription as a black box returning text plus
optional timed segments.
"""

import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import httpx

from .audio import AudioError, get_duration
from .config import FetchConfig, TranscriptionConfig
from .models import SpeechSegment, SpeechTranscription

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_BYTES = 64 * 1024


class TranscriptionError(Exception):
    """Error during transcription."""

    pass


class SpeechTranscriber(ABC):
    """Abstract base class for speech-to-text backends."""

    @abstractmethod
    def transcribe(self, path: str) -> SpeechTranscription:
        """Transcribe a local audio file.

        Raises:
            TranscriptionError: If transcription fails.
        """
        pass


class WhisperTranscriber(SpeechTranscriber):
    """Local transcription with faster-whisper."""

    def __init__(self, model_name: str = "small", device: str = "cpu"):
        self.model_name = model_name
        self.device = device

    @classmethod
    def from_config(cls, config: TranscriptionConfig) -> "WhisperTranscriber":
        return cls(model_name=config.model, device=config.device)

    def transcribe(self, path: str) -> SpeechTranscription:
        """Transcribe an audio file.

        Args:
            path: Path to the audio file.

        Returns:
            Full text, timed segments and the detected duration.

        Raises:
            TranscriptionError: If faster-whisper is missing or transcription fails.
        """
        try:
            from faster_whisper import WhisperModel
        except ImportError:
            raise TranscriptionError(
                "faster-whisper is not installed. Run: pip install faster-whisper"
            )

        audio_path = Path(path)
        if not audio_path.exists():
            raise TranscriptionError(f"Audio file not found: {path}")

        try:
            # Configure compute type based on device
            compute_type = "float16" if self.device == "cuda" else "int8"
            model = WhisperModel(self.model_name, device=self.device, compute_type=compute_type)

            segments_iter, info = model.transcribe(
                str(audio_path),
                beam_size=5,
                vad_filter=True,
                vad_parameters=dict(min_silence_duration_ms=500),
            )

            segments = [
                SpeechSegment(start=segment.start, end=segment.end, text=segment.text.strip())
                for segment in segments_iter
                if segment.text.strip()
            ]
        except Exception as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e

        logger.info(f"Transcribed {len(segments)} segments with whisper '{self.model_name}'")
        return SpeechTranscription(
            text=" ".join(segment.text for segment in segments),
            segments=segments,
            duration=getattr(info, "duration", None),
        )


def download_audio(client: httpx.Client, url: str, dest: Path, max_bytes: int) -> Path:
    """Stream ``url`` to ``dest``, refusing files larger than ``max_bytes``.

    Raises:
        TranscriptionError: On HTTP failure or when the size cap is hit.
    """
    written = 0
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_bytes(DOWNLOAD_CHUNK_BYTES):
                    written += len(chunk)
                    if written > max_bytes:
                        raise TranscriptionError(
                            f"Audio exceeds {max_bytes // (1024 * 1024)} MB limit: {url}"
                        )
                    f.write(chunk)
    except httpx.HTTPError as e:
        raise TranscriptionError(f"Audio download failed for {url}: {e}") from e

    logger.info(f"Downloaded {written / (1024 * 1024):.1f} MB of audio")
    return dest


def transcribe_url(
    url: str,
    transcriber: SpeechTranscriber,
    transcription_config: TranscriptionConfig,
    fetch_config: FetchConfig,
) -> SpeechTranscription:
    """Download episode audio and transcribe it.

    When the backend reports no duration, the downloaded file is probed
    with ffprobe.

    Raises:
        TranscriptionError: If download or transcription fails.
    """
    with tempfile.TemporaryDirectory(prefix="skipmap-") as tmp_dir:
        suffix = Path(url.split("?", 1)[0]).suffix or ".mp3"
        dest = Path(tmp_dir) / f"episode{suffix}"

        with httpx.Client(
            timeout=fetch_config.timeout,
            follow_redirects=True,
            headers={"User-Agent": fetch_config.user_agent},
        ) as client:
            download_audio(client, url, dest, transcription_config.max_audio_bytes)

        result = transcriber.transcribe(str(dest))

        if not result.duration:
            try:
                result = result.model_copy(update={"duration": get_duration(str(dest))})
            except AudioError as e:
                logger.warning(f"Could not probe audio duration: {e}")

    return result

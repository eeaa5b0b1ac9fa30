"""Configuration management for skipmap."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

MIN_FETCH_CONCURRENCY = 1
MAX_FETCH_CONCURRENCY = 3


@dataclass
class LLMConfig:
    """Configuration for LLM-assisted ad location."""

    provider: str = "none"
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    timeout: float = 60.0
    max_tokens: int = 2048
    temperature: float = 0.0
    max_transcript_chars: int = 60_000

    @property
    def api_key(self) -> str | None:
        """Get API key from environment variable."""
        return os.environ.get(self.api_key_env)


@dataclass
class TranscriptionConfig:
    """Configuration for local speech-to-text."""

    enabled: bool = False
    model: str = "small"
    device: str = "cpu"
    timeout: float = 600.0
    max_audio_bytes: int = 200 * 1024 * 1024


@dataclass
class FetchConfig:
    """Configuration for transcript page and file downloads."""

    timeout: float = 15.0
    max_concurrency: int = 2
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        self.max_concurrency = min(
            MAX_FETCH_CONCURRENCY, max(MIN_FETCH_CONCURRENCY, int(self.max_concurrency))
        )


@dataclass
class ValidationConfig:
    """Thresholds for the transcript quality check."""

    words_per_minute: float = 155.0
    min_word_ratio: float = 0.3
    min_lines: int = 5
    max_avg_words_per_line: float = 500.0


@dataclass
class Config:
    """Main configuration for skipmap."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)


def load_config(path: str | None = None) -> Config:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, returns default config.

    Returns:
        A Config object with loaded or default values.
    """
    if path is None:
        return Config()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        import tomli

        with open(config_path, "rb") as f:
            data = tomli.load(f)
    except ImportError:
        raise ImportError("tomli is required for config loading. Run: pip install tomli")

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> Config:
    """Parse configuration dictionary into Config object.

    Args:
        data: Dictionary from TOML file.

    Returns:
        Parsed Config object.
    """
    llm_data = data.get("llm", {})
    transcription_data = data.get("transcription", {})
    fetch_data = data.get("fetch", {})
    validation_data = data.get("validation", {})

    llm_defaults = LLMConfig()
    llm_config = LLMConfig(
        provider=llm_data.get("provider", llm_defaults.provider),
        model=llm_data.get("model", llm_defaults.model),
        api_key_env=llm_data.get("api_key_env", llm_defaults.api_key_env),
        base_url=llm_data.get("base_url"),
        timeout=llm_data.get("timeout", llm_defaults.timeout),
        max_tokens=llm_data.get("max_tokens", llm_defaults.max_tokens),
        temperature=llm_data.get("temperature", llm_defaults.temperature),
        max_transcript_chars=llm_data.get("max_transcript_chars", llm_defaults.max_transcript_chars),
    )

    transcription_defaults = TranscriptionConfig()
    transcription_config = TranscriptionConfig(
        enabled=transcription_data.get("enabled", transcription_defaults.enabled),
        model=transcription_data.get("model", transcription_defaults.model),
        device=transcription_data.get("device", transcription_defaults.device),
        timeout=transcription_data.get("timeout", transcription_defaults.timeout),
        max_audio_bytes=transcription_data.get("max_audio_bytes", transcription_defaults.max_audio_bytes),
    )

    fetch_config = FetchConfig(
        timeout=fetch_data.get("timeout", 15.0),
        max_concurrency=fetch_data.get("max_concurrency", 2),
        user_agent=fetch_data.get("user_agent", DEFAULT_USER_AGENT),
    )

    validation_defaults = ValidationConfig()
    validation_config = ValidationConfig(
        words_per_minute=validation_data.get("words_per_minute", validation_defaults.words_per_minute),
        min_word_ratio=validation_data.get("min_word_ratio", validation_defaults.min_word_ratio),
        min_lines=validation_data.get("min_lines", validation_defaults.min_lines),
        max_avg_words_per_line=validation_data.get(
            "max_avg_words_per_line", validation_defaults.max_avg_words_per_line
        ),
    )

    return Config(
        llm=llm_config,
        transcription=transcription_config,
        fetch=fetch_config,
        validation=validation_config,
    )

"""LLM-assisted ad-block location.

Provider adapters normalize every SDK response to ``LLMCompletion`` so the
locator never sees provider-specific shapes. Adapters are created through
an explicit provider registry that callers build once and pass in.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from .ad_keywords import find_ad_blocks
from .config import LLMConfig
from .json_recovery import MalformedResponse, recover_json
from .line_model import preview_text
from .models import AdBlock, LLMCompletion, LLMUsage, LocatorResult, TranscriptLine
from .transcript import render_numbered_transcript

logger = logging.getLogger(__name__)

# Confidence assigned to blocks located by the model
LLM_CONFIDENCE = 0.9

SYSTEM_PROMPT = """You are an ad-block detector for podcast transcripts. You read the full transcript and identify contiguous blocks of lines that are advertisements, sponsor reads, funding credits, or promotional content, NOT editorial content.

IMPORTANT: You are looking for OBVIOUS ad blocks. These are contiguous runs of lines where the content is clearly commercial/promotional. Typical patterns:
- "Support for this podcast comes from..."
- "This message comes from..."
- Sponsor descriptions with calls-to-action ("visit example.com", "use promo code...")
- NPR funding credits ("Support for NPR comes from...")
- Show promos ("Coming up on..." for a different show)

These ad blocks are typically 1-5 lines long and there are at most a few per episode (one every 10-15 minutes of content). They are VERY obvious: a human would spot them instantly.

Do NOT flag: regular editorial discussion about economics/business/companies, interview content, the host's own commentary, or transitions between topics.

Return ONLY valid JSON."""

USER_PROMPT_TEMPLATE = """Here is the full transcript of "{title}" with numbered lines.
Find all ad blocks: contiguous ranges of lines that are ads/sponsors/funding credits.

For each block, return the start and end line numbers (inclusive) and a short reason.

TRANSCRIPT:
{transcript}

Return JSON:
{{
  "adBlocks": [
    {{ "startLine": number, "endLine": number, "reason": "short explanation" }}
  ]
}}"""


class LLMError(Exception):
    """Provider call failed or timed out."""
    pass


class CompletionAdapter(ABC):
    """Abstract base class for provider adapters."""

    @abstractmethod
    def complete(self, system: str, user: str) -> LLMCompletion:
        """Run one chat completion.

        Args:
            system: System prompt.
            user: User prompt.

        Returns:
            The normalized completion.

        Raises:
            LLMError: If the provider call fails or times out.
        """
        pass


class OpenAIAdapter(CompletionAdapter):
    """OpenAI (or OpenAI-compatible) chat completions."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    @classmethod
    def from_config(cls, config: LLMConfig, api_key: str) -> "OpenAIAdapter":
        return cls(
            api_key=api_key,
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )

    def complete(self, system: str, user: str) -> LLMCompletion:
        try:
            from openai import OpenAI, OpenAIError
        except ImportError as e:
            raise LLMError("openai is required. Run: pip install openai") from e

        client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)

        # Build API call params - some models have different requirements
        api_params: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_completion_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        # GPT-5 models are reasoning models - need reasoning_effort, no temperature
        if self.model.startswith("gpt-5"):
            api_params["reasoning_effort"] = "low"
        else:
            api_params["temperature"] = self.temperature

        try:
            response = client.chat.completions.create(**api_params)
        except OpenAIError as e:
            raise LLMError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            raise LLMError("OpenAI response has no choices")

        choice = response.choices[0]
        usage = LLMUsage()
        if response.usage is not None:
            usage = LLMUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )

        return LLMCompletion(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason,
            usage=usage,
        )


class GeminiAdapter(CompletionAdapter):
    """Google Gemini text generation."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        timeout: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.0,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._genai = None  # Lazy import

    @classmethod
    def from_config(cls, config: LLMConfig, api_key: str) -> "GeminiAdapter":
        return cls(
            api_key=api_key,
            model=config.model,
            timeout=config.timeout,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )

    def _get_genai(self):
        """Lazily import and configure google.generativeai."""
        if self._genai is None:
            try:
                import google.generativeai as genai

                genai.configure(api_key=self.api_key)
                self._genai = genai
            except ImportError as e:
                raise LLMError(
                    "google-generativeai is required for the gemini provider. "
                    "Run: pip install google-generativeai"
                ) from e
        return self._genai

    def complete(self, system: str, user: str) -> LLMCompletion:
        genai = self._get_genai()

        try:
            model = genai.GenerativeModel(self.model, system_instruction=system)
            response = model.generate_content(
                user,
                generation_config={
                    "temperature": self.temperature,
                    "max_output_tokens": self.max_tokens,
                    "response_mime_type": "application/json",
                },
                request_options={"timeout": self.timeout},
            )
        except Exception as e:
            raise LLMError(f"Gemini request failed: {e}") from e

        finish_reason = None
        if getattr(response, "candidates", None):
            reason = getattr(response.candidates[0], "finish_reason", None)
            finish_reason = getattr(reason, "name", None) or (str(reason) if reason is not None else None)

        try:
            content = response.text
        except ValueError as e:
            # Raised when the candidate was blocked and has no text parts
            raise LLMError(f"Gemini response has no text (finish reason: {finish_reason})") from e

        usage = LLMUsage()
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = LLMUsage(
                prompt_tokens=getattr(metadata, "prompt_token_count", 0) or 0,
                completion_tokens=getattr(metadata, "candidates_token_count", 0) or 0,
                total_tokens=getattr(metadata, "total_token_count", 0) or 0,
            )

        return LLMCompletion(content=content or "", finish_reason=finish_reason, usage=usage)


AdapterFactory = Callable[[LLMConfig, str], CompletionAdapter]


def build_provider_registry() -> dict[str, AdapterFactory]:
    """Map of provider name to adapter factory, built once at startup."""
    return {
        "openai": OpenAIAdapter.from_config,
        "gemini": GeminiAdapter.from_config,
    }


def create_completion_adapter(
    config: LLMConfig,
    registry: dict[str, AdapterFactory],
) -> CompletionAdapter | None:
    """Create the configured provider adapter.

    Args:
        config: LLM configuration.
        registry: Provider registry from ``build_provider_registry``.

    Returns:
        An adapter, or None when the provider is "none" or its credential
        is not set (heuristic location is used instead).

    Raises:
        ValueError: If the provider is not in the registry.
    """
    provider = config.provider.lower()

    if provider == "none":
        return None

    factory = registry.get(provider)
    if factory is None:
        supported = ", ".join(["none", *sorted(registry)])
        raise ValueError(f"Unknown LLM provider: {provider}. Supported: {supported}")

    api_key = config.api_key
    if not api_key:
        logger.info(f"{config.api_key_env} is not set; using heuristic ad location")
        return None

    return factory(config, api_key)


def build_user_prompt(lines: list[TranscriptLine], title: str, max_chars: int | None = None) -> str:
    """Build the user prompt with the numbered transcript."""
    numbered = render_numbered_transcript(lines, max_chars)
    rendered = numbered.count("\n") + 1 if numbered else 0
    if rendered < len(lines):
        logger.warning(
            f"Transcript truncated to {rendered} of {len(lines)} lines for the prompt budget"
        )
    return USER_PROMPT_TEMPLATE.format(title=title or "Untitled episode", transcript=numbered)


def _as_line_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def merge_overlapping_blocks(blocks: list[AdBlock], lines: list[TranscriptLine]) -> list[AdBlock]:
    """Sort blocks by start line and merge ranges that overlap."""
    merged: list[AdBlock] = []
    for block in sorted(blocks, key=lambda b: (b.start_line, b.end_line)):
        if merged and block.start_line <= merged[-1].end_line:
            previous = merged[-1]
            end_line = max(previous.end_line, block.end_line)
            merged[-1] = previous.model_copy(update={
                "end_line": end_line,
                "reason": previous.reason if block.reason in previous.reason else f"{previous.reason}; {block.reason}",
                "text_preview": preview_text(lines, previous.start_line, end_line),
                "confidence": max(previous.confidence, block.confidence),
            })
        else:
            merged.append(block)
    return merged


def parse_ad_blocks(content: str, lines: list[TranscriptLine]) -> list[AdBlock]:
    """Parse a completion into validated ad blocks.

    Entries whose line range does not resolve against ``lines`` are dropped;
    reversed ranges are swapped.

    Raises:
        MalformedResponse: If no JSON can be recovered or it has no block list.
    """
    data = recover_json(content)

    if isinstance(data, dict):
        entries = data.get("adBlocks", data.get("ad_blocks"))
    else:
        entries = data
    if not isinstance(entries, list):
        raise MalformedResponse("Completion JSON has no adBlocks array", content)

    valid_numbers = {line.line_number for line in lines}
    blocks: list[AdBlock] = []

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        start = _as_line_number(entry.get("startLine", entry.get("start_line")))
        end = _as_line_number(entry.get("endLine", entry.get("end_line")))
        if start is None or end is None:
            logger.warning(f"Skipping ad block without line numbers: {entry}")
            continue
        if start > end:
            start, end = end, start
        if start not in valid_numbers or end not in valid_numbers:
            logger.warning(f"Skipping ad block with unknown lines {start}-{end}")
            continue

        reason = entry.get("reason")
        blocks.append(
            AdBlock(
                start_line=start,
                end_line=end,
                reason=str(reason) if reason else "LLM analysis",
                text_preview=preview_text(lines, start, end),
                confidence=LLM_CONFIDENCE,
            )
        )

    return merge_overlapping_blocks(blocks, lines)


class LLMAdLocator:
    """Locates ad blocks with a completion adapter, degrading to heuristics."""

    def __init__(self, adapter: CompletionAdapter, max_transcript_chars: int | None = None):
        self.adapter = adapter
        self.max_transcript_chars = max_transcript_chars

    def locate(self, lines: list[TranscriptLine], title: str = "") -> LocatorResult:
        """Locate ad blocks in ``lines``.

        Failure to call the model or to parse its answer, and an empty
        answer, all fall back to the heuristic scan; this never raises for
        provider or parse errors.
        """
        if not lines:
            return LocatorResult(blocks=[], strategy="llm")

        user_prompt = build_user_prompt(lines, title, self.max_transcript_chars)

        try:
            completion = self.adapter.complete(SYSTEM_PROMPT, user_prompt)
        except LLMError as e:
            logger.warning(f"LLM ad location failed, using heuristics: {e}")
            return LocatorResult(
                blocks=find_ad_blocks(lines),
                strategy="heuristic-fallback",
                error=str(e),
            )

        logger.info(
            f"LLM tokens: prompt={completion.usage.prompt_tokens} "
            f"completion={completion.usage.completion_tokens}"
        )
        logger.debug(f"Raw LLM response: {completion.content[:500]!r}")

        try:
            blocks = parse_ad_blocks(completion.content, lines)
        except MalformedResponse as e:
            logger.warning(f"Could not parse LLM response, using heuristics: {e}")
            return LocatorResult(
                blocks=find_ad_blocks(lines),
                strategy="heuristic-fallback",
                llm_response=completion.content,
                error=str(e),
            )

        if not blocks:
            logger.warning("LLM returned no ad blocks, using heuristics")
            return LocatorResult(
                blocks=find_ad_blocks(lines),
                strategy="heuristic-fallback",
                llm_response=completion.content,
                error="LLM returned no ad blocks",
            )

        return LocatorResult(blocks=blocks, strategy="llm", llm_response=completion.content)


def locate_ad_blocks(
    lines: list[TranscriptLine],
    adapter: CompletionAdapter | None,
    title: str = "",
    max_transcript_chars: int | None = None,
) -> LocatorResult:
    """Locate ad blocks with the LLM when an adapter is available, else heuristically."""
    if adapter is None:
        return LocatorResult(blocks=find_ad_blocks(lines), strategy="heuristic")
    return LLMAdLocator(adapter, max_transcript_chars).locate(lines, title)

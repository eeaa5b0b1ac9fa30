"""Recover JSON values from free-text LLM completions.

Models wrap JSON in prose or markdown fences, truncate it, leave trailing
commas, or put raw newlines inside strings. ``recover_json`` is the single
entry point every completion parser goes through.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# ```json ... ``` or ``` ... ```
FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```", re.IGNORECASE)

TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")

CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}

PREVIEW_CHARS = 500


class MalformedResponse(ValueError):
    """No JSON value could be recovered from a completion."""

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.preview = text[:PREVIEW_CHARS]


def strip_code_fence(text: str) -> str:
    """Return the body of the first markdown code fence, or the text itself."""
    cleaned = text.strip()
    match = FENCE_PATTERN.search(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def extract_outermost_json(text: str) -> str | None:
    """Find the first balanced JSON object or array in ``text``.

    Whichever of ``{`` and ``[`` opens first is tried first, the other as a
    fallback. Brackets inside string literals do not count toward depth.

    Returns:
        The exact substring of the balanced span, or None.
    """
    obj_idx = text.find("{")
    arr_idx = text.find("[")

    attempts: list[tuple[str, str]] = []
    if obj_idx != -1 and arr_idx != -1:
        if arr_idx < obj_idx:
            attempts = [("[", "]"), ("{", "}")]
        else:
            attempts = [("{", "}"), ("[", "]")]
    elif obj_idx != -1:
        attempts = [("{", "}")]
    elif arr_idx != -1:
        attempts = [("[", "]")]

    for open_char, close_char in attempts:
        start = text.find(open_char)
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if escaped:
                escaped = False
                continue
            if ch == "\\" and in_string:
                escaped = True
                continue
            if ch == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if ch == open_char:
                depth += 1
            elif ch == close_char:
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]

    return None


def repair_json(raw: str) -> str:
    """Drop trailing commas and escape raw control characters inside strings."""
    text = TRAILING_COMMA_PATTERN.sub(r"\1", raw)

    chars: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if escaped:
            chars.append(ch)
            escaped = False
            continue
        if ch == "\\" and in_string:
            chars.append(ch)
            escaped = True
            continue
        if ch == '"':
            in_string = not in_string
            chars.append(ch)
            continue
        if in_string and ord(ch) < 0x20:
            chars.append(CONTROL_ESCAPES.get(ch, f"\\u{ord(ch):04x}"))
            continue
        chars.append(ch)

    return "".join(chars)


def recover_json(text: str) -> Any:
    """Parse the JSON value a model intended to emit.

    Args:
        text: Raw completion text.

    Returns:
        The parsed JSON value (dict, list, or scalar).

    Raises:
        MalformedResponse: If every repair strategy fails.
    """
    if not text or not text.strip():
        raise MalformedResponse("Empty completion", text or "")

    unfenced = strip_code_fence(text)
    attempts = [unfenced]
    # A fence marker inside a JSON string would cut the value short
    if unfenced != text.strip():
        attempts.append(text.strip())

    last_error = "No JSON found in completion"
    for cleaned in attempts:
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            pass

        candidate = extract_outermost_json(cleaned)
        if candidate is None:
            continue

        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass

        try:
            value = json.loads(repair_json(candidate))
        except json.JSONDecodeError as e:
            last_error = f"JSON parse failed after repair: {e}"
            continue

        logger.debug("Recovered JSON after repair")
        return value

    logger.debug(f"{last_error}; completion preview: {text[:PREVIEW_CHARS]!r}")
    raise MalformedResponse(last_error, text)

"""Heuristic ad-block location using fixed phrase markers.

Used when no LLM credential is configured and as the fallback when the
LLM path fails. Every matching line becomes its own single-line block.
"""

import logging
import re

from .line_model import preview_text
from .models import AdBlock, TranscriptLine

logger = logging.getLogger(__name__)

# Phrase markers checked against lowercased line text
# Format: (phrase, category)
AD_MARKERS: list[tuple[str, str]] = [
    ("support for this podcast", "sponsor_read"),
    ("support for the podcast", "sponsor_read"),
    ("this message comes from", "sponsor_read"),
    ("brought to you by", "sponsor_read"),
    ("sponsored by", "sponsor_read"),
    ("word from our sponsor", "sponsor_read"),
    ("support for npr", "funding_credit"),
    ("funding for", "funding_credit"),
    ("support for this program", "funding_credit"),
]

# Sponsor wording not covered by the fixed phrases
SPONSOR_WORD_PATTERN = re.compile(
    r"\b(?:supported|sponsored|underwritten)\s+by\b"
    r"|\bsupport\s+(?:for\s+(?:this|the)\s+(?:podcast|show|program)|comes?\s+from)\b"
    r"|\bnpr\s+sponsor\b",
    re.IGNORECASE,
)

# Fixed confidence, below the LLM path's
HEURISTIC_CONFIDENCE = 0.6


def match_ad_marker(text: str) -> tuple[str, str] | None:
    """Find the first ad marker in ``text``.

    Returns:
        A (trigger, category) tuple, or None if the text looks editorial.
    """
    lowered = text.lower()
    for phrase, category in AD_MARKERS:
        if phrase in lowered:
            return phrase, category

    match = SPONSOR_WORD_PATTERN.search(text)
    if match:
        return match.group(0).lower(), "sponsor_read"
    return None


def find_ad_blocks(lines: list[TranscriptLine]) -> list[AdBlock]:
    """Locate ad blocks by scanning each line for sponsor markers.

    Args:
        lines: The line model; may be empty.

    Returns:
        One single-line AdBlock per matching line, in line order. Word and
        time fields are left for the timestamp mapper.
    """
    blocks: list[AdBlock] = []

    for line in lines:
        hit = match_ad_marker(line.text)
        if hit is None:
            continue
        trigger, category = hit
        blocks.append(
            AdBlock(
                start_line=line.line_number,
                end_line=line.line_number,
                reason=f'{category.replace("_", " ").capitalize()}: "{trigger}"',
                text_preview=preview_text(lines, line.line_number, line.line_number),
                confidence=HEURISTIC_CONFIDENCE,
            )
        )

    logger.debug(f"Heuristic scan found {len(blocks)} ad blocks in {len(lines)} lines")
    return blocks

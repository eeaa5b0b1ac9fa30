"""Shared post-processing that turns raw text units into a line model.

Every format builder isolates raw per-cue or per-paragraph text and hands
it to ``LineModelBuilder``, which normalizes it, splits off the speaker
and assigns line numbers and running word counts.
"""

import re
from typing import Iterable, Optional

from .models import TranscriptLine

# All-caps speaker tag at the start of a line, e.g. "DARIAN WOODS, HOST:"
SPEAKER_PATTERN = re.compile(r"^([A-Z][A-Z\s'.,-]+):\s*")

WHITESPACE_PATTERN = re.compile(r"\s+")

# Order matters: &amp; last so "&amp;lt;" stays "&lt;"
HTML_ENTITIES: list[tuple[str, str]] = [
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#x27;", "'"),
    ("&#39;", "'"),
    ("&nbsp;", " "),
    ("&amp;", "&"),
]

MIN_UNIT_CHARS = 3


def decode_entities(text: str) -> str:
    """Decode the handful of HTML entities transcript sources actually use."""
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)
    return text


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """Decode entities, collapse whitespace and trim."""
    return collapse_whitespace(decode_entities(text))


def split_speaker(text: str) -> tuple[str, str]:
    """Split a leading all-caps speaker tag off ``text``.

    Returns:
        A (speaker, content) tuple; speaker is "" when there is no tag.
    """
    match = SPEAKER_PATTERN.match(text)
    if not match:
        return "", text
    return match.group(1).strip(), text[match.end():].strip()


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    return len(text.split())


def total_words(lines: list[TranscriptLine]) -> int:
    """Total word count of a line model (0 when empty)."""
    return lines[-1].cumulative_word_count if lines else 0


class LineModelBuilder:
    """Accumulates text units into an ordered, word-indexed line model.

    Units parsed by BeautifulSoup already have their entities decoded; pass
    ``decode=False`` for them so literal text such as "&lt;" survives.
    """

    def __init__(self, decode: bool = True) -> None:
        self._normalize = normalize_text if decode else collapse_whitespace
        self._lines: list[TranscriptLine] = []
        self._cumulative = 0

    def add(self, raw_text: str, speaker: Optional[str] = None) -> Optional[TranscriptLine]:
        """Normalize one raw unit and append it as a line.

        Args:
            raw_text: Text with markup already stripped.
            speaker: Explicit speaker; when given, the all-caps tag is not
                looked for. An empty string means "no explicit speaker".

        Returns:
            The appended line, or None if the unit was discarded.
        """
        text = self._normalize(raw_text)
        if len(text) < MIN_UNIT_CHARS:
            return None

        if speaker:
            content = text
            speaker = self._normalize(speaker)
        else:
            speaker, content = split_speaker(text)

        if not content:
            return None

        word_count = count_words(content)
        self._cumulative += word_count
        line = TranscriptLine(
            line_number=len(self._lines) + 1,
            speaker=speaker,
            text=content,
            word_count=word_count,
            cumulative_word_count=self._cumulative,
        )
        self._lines.append(line)
        return line

    def extend(self, units: Iterable[str]) -> None:
        """Add several raw units without explicit speakers."""
        for unit in units:
            self.add(unit)

    @property
    def lines(self) -> list[TranscriptLine]:
        return list(self._lines)


def build_lines(units: Iterable[str], decode: bool = True) -> list[TranscriptLine]:
    """Build a line model from raw text units."""
    builder = LineModelBuilder(decode)
    builder.extend(units)
    return builder.lines


PREVIEW_CHARS = 200


def preview_text(lines: list[TranscriptLine], start_line: int, end_line: int) -> str:
    """Joined text of the lines in ``[start_line, end_line]``, capped for display."""
    texts = [line.text for line in lines if start_line <= line.line_number <= end_line]
    return " ".join(texts)[:PREVIEW_CHARS]

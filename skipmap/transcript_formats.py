"""Line model builders for every supported transcript source format.

Each builder isolates raw per-cue or per-paragraph text and feeds it
through ``LineModelBuilder`` so that all formats share speaker detection
and word counting.
"""

import json
import logging
import re
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup, Tag

from .chrome_filter import match_chrome_rule
from .line_model import SPEAKER_PATTERN, LineModelBuilder, build_lines, collapse_whitespace
from .models import SpeechTranscription, TranscriptLine

logger = logging.getLogger(__name__)


class UnsupportedFormat(ValueError):
    """Transcript content or MIME type is not recognizable."""
    pass


# HTML section isolation
SECTION_CLASS_PATTERN = re.compile(r"transcript|storytext", re.IGNORECASE)
SECTION_ID_PATTERN = re.compile(r"^(transcript|storytext)$", re.IGNORECASE)
MIN_SECTION_PARAGRAPHS = 5
MIN_SPEAKER_PARAGRAPHS = 3
NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]

# Subtitle formats
BLOCK_SEPARATOR = re.compile(r"\n\s*\n")
TIMING_ARROW = "-->"
VOICE_TAG_PATTERN = re.compile(r"^\s*<v(?:\.[^\s>]+)*\s+([^>]+)>")
TAG_PATTERN = re.compile(r"<[^>]+>")

# JSON cue locations and field names, in lookup order
JSON_CUE_KEYS = ("segments", "cues", "transcript")
JSON_TEXT_FIELDS = ("body", "text", "content")
JSON_SPEAKER_FIELDS = ("speaker", "voice")

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def _paragraph_texts(section: Tag) -> list[str]:
    """Text of each paragraph-like block, or of each text line if there are none."""
    paragraphs = section.find_all("p")
    if paragraphs:
        return [p.get_text(" ") for p in paragraphs]
    return section.get_text("\n").split("\n")


def _bold_speaker(paragraph: Tag) -> bool:
    bold = paragraph.find(["b", "strong"])
    if bold is None:
        return False
    return SPEAKER_PATTERN.match(bold.get_text(" ").strip()) is not None


def isolate_transcript_section(html: str) -> list[str]:
    """Find the transcript-relevant part of a scraped page.

    Tried in order:
    1. a "transcript"/"storytext" classed container with at least 5 paragraphs
    2. the first ``<article>``
    3. an element with id "transcript" or "storytext"
    4. the run of paragraphs between the first and last bold speaker tag,
       when there are at least 3 of them
    5. the whole page

    Args:
        html: Raw page HTML.

    Returns:
        Raw text of each candidate paragraph in document order.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NON_CONTENT_TAGS):
        tag.decompose()

    for container in soup.find_all(class_=SECTION_CLASS_PATTERN):
        if len(container.find_all("p")) >= MIN_SECTION_PARAGRAPHS:
            logger.debug("Using classed transcript container")
            return _paragraph_texts(container)

    article = soup.find("article")
    if article is not None:
        logger.debug("Using <article> element")
        return _paragraph_texts(article)

    by_id = soup.find(id=SECTION_ID_PATTERN)
    if by_id is not None:
        logger.debug(f"Using element with id={by_id.get('id')!r}")
        return _paragraph_texts(by_id)

    paragraphs = soup.find_all("p")
    speaker_indices = [i for i, p in enumerate(paragraphs) if _bold_speaker(p)]
    if len(speaker_indices) >= MIN_SPEAKER_PARAGRAPHS:
        logger.debug(f"Using speaker-bounded span of {len(speaker_indices)} tagged paragraphs")
        span = paragraphs[speaker_indices[0]:speaker_indices[-1] + 1]
        return [p.get_text(" ") for p in span]

    logger.debug("No transcript section found, using whole page")
    return _paragraph_texts(soup)


def parse_html_transcript(html: str) -> list[TranscriptLine]:
    """Build a line model from a scraped transcript page.

    Candidate paragraphs pass through the page-chrome filter before line
    construction.
    """
    builder = LineModelBuilder(decode=False)
    rejected: dict[str, int] = {}

    for raw in isolate_transcript_section(html):
        text = collapse_whitespace(raw)
        if not text:
            continue
        rule = match_chrome_rule(text)
        if rule:
            rejected[rule] = rejected.get(rule, 0) + 1
            continue
        builder.add(text)

    lines = builder.lines
    if rejected:
        logger.debug(f"Page chrome rejected: {rejected}")
    logger.debug(f"HTML transcript: {len(lines)} lines")
    return lines


def _add_cue(builder: LineModelBuilder, raw: str) -> None:
    """Add one subtitle cue, honoring a ``<v Name>`` voice tag."""
    raw = raw.strip()
    if SPEAKER_PATTERN.match(raw):
        builder.add(TAG_PATTERN.sub("", raw))
        return

    voice = VOICE_TAG_PATTERN.match(raw)
    if voice:
        content = TAG_PATTERN.sub("", raw[voice.end():])
        builder.add(content, speaker=voice.group(1).strip())
        return

    builder.add(TAG_PATTERN.sub("", raw))


def _split_blocks(content: str) -> list[list[str]]:
    content = content.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not content:
        return []
    return [block.strip().split("\n") for block in BLOCK_SEPARATOR.split(content)]


def parse_srt(content: str) -> list[TranscriptLine]:
    """Build a line model from SRT subtitle text."""
    builder = LineModelBuilder()

    for block in _split_blocks(content):
        # Index line and timing line precede the cue text
        if len(block) > 1 and TIMING_ARROW in block[1]:
            cue_lines = block[2:]
        elif TIMING_ARROW in block[0]:
            cue_lines = block[1:]
        else:
            cue_lines = block[2:]
        if cue_lines:
            _add_cue(builder, " ".join(cue_lines))

    return builder.lines


def parse_vtt(content: str) -> list[TranscriptLine]:
    """Build a line model from WebVTT text.

    The ``WEBVTT`` header block and any NOTE, STYLE or REGION blocks have
    no timing line and are skipped.
    """
    builder = LineModelBuilder()

    for block in _split_blocks(content):
        timing_index = next(
            (i for i, line in enumerate(block) if TIMING_ARROW in line),
            None,
        )
        if timing_index is None:
            continue
        cue_lines = block[timing_index + 1:]
        if cue_lines:
            _add_cue(builder, " ".join(cue_lines))

    return builder.lines


def _first_field(item: dict[str, Any], fields: tuple[str, ...]) -> str:
    for field in fields:
        value = item.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _locate_cues(data: Any) -> Optional[list[Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in JSON_CUE_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return None


def parse_json_cues_strict(content: str) -> list[TranscriptLine]:
    """Build a line model from a JSON transcript (e.g. Podcast 2.0).

    Raises:
        UnsupportedFormat: If the content is not JSON or holds no cue array.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise UnsupportedFormat(f"Transcript is not valid JSON: {e}") from e

    cues = _locate_cues(data)
    if cues is None:
        raise UnsupportedFormat(
            f"No cue array under any of {', '.join(JSON_CUE_KEYS)} and root is not an array"
        )

    builder = LineModelBuilder()
    for cue in cues:
        if not isinstance(cue, dict):
            continue
        text = _first_field(cue, JSON_TEXT_FIELDS)
        if not text:
            continue
        # Explicit speaker field bypasses tag detection
        builder.add(text, speaker=_first_field(cue, JSON_SPEAKER_FIELDS))

    return builder.lines


def parse_json_cues(content: str) -> list[TranscriptLine]:
    """Lenient JSON transcript builder: unrecognizable input yields no lines."""
    try:
        return parse_json_cues_strict(content)
    except UnsupportedFormat as e:
        logger.warning(f"Ignoring JSON transcript: {e}")
        return []


def parse_plain_text(content: str) -> list[TranscriptLine]:
    """Build a line model from plain text, one line per non-empty text line."""
    return build_lines(content.splitlines())


def split_sentences(text: str) -> list[str]:
    return [s for s in SENTENCE_BOUNDARY.split(text.strip()) if s]


def build_speech_lines(transcription: SpeechTranscription) -> list[TranscriptLine]:
    """Build a line model from speech-to-text output.

    Segment timings are dropped; lines are timed later by the same
    proportional mapping used for every other source. Without segments the
    full text is split into sentences.
    """
    if transcription.segments:
        return build_lines(segment.text for segment in transcription.segments)
    return build_lines(split_sentences(transcription.text))


# Parser per format name, in preference order
FORMAT_PARSERS: dict[str, Callable[[str], list[TranscriptLine]]] = {
    "srt": parse_srt,
    "vtt": parse_vtt,
    "json": parse_json_cues,
    "html": parse_html_transcript,
    "text": parse_plain_text,
}

FORMAT_PREFERENCE = list(FORMAT_PARSERS)

MIME_FORMATS: dict[str, str] = {
    "application/x-subrip": "srt",
    "application/srt": "srt",
    "text/srt": "srt",
    "text/vtt": "vtt",
    "application/json": "json",
    "text/json": "json",
    "text/html": "html",
    "application/xhtml+xml": "html",
    "text/plain": "text",
}


def detect_format(mime_type: str) -> Optional[str]:
    """Map a MIME-style type string to a format name, ignoring parameters."""
    base = mime_type.split(";", 1)[0].strip().lower()
    return MIME_FORMATS.get(base)


def format_rank(mime_type: str) -> int:
    """Preference rank of a MIME type; lower is better, unknown types last."""
    fmt = detect_format(mime_type)
    if fmt is None:
        return len(FORMAT_PREFERENCE)
    return FORMAT_PREFERENCE.index(fmt)


def parse_transcript_file(content: str, mime_type: str) -> list[TranscriptLine]:
    """Dispatch raw transcript content to the parser for its MIME type.

    Raises:
        UnsupportedFormat: If the MIME type is not recognized.
    """
    fmt = detect_format(mime_type)
    if fmt is None:
        raise UnsupportedFormat(f"Unsupported transcript type: {mime_type}")
    return FORMAT_PARSERS[fmt](content)


EXTENSION_TYPES: dict[str, str] = {
    ".srt": "application/x-subrip",
    ".vtt": "text/vtt",
    ".json": "application/json",
    ".html": "text/html",
    ".htm": "text/html",
    ".txt": "text/plain",
}


def guess_mime_type(path_or_url: str) -> Optional[str]:
    """MIME type for a transcript file name or URL, from its extension."""
    name = path_or_url.split("?", 1)[0].split("#", 1)[0].lower()
    for extension, mime_type in EXTENSION_TYPES.items():
        if name.endswith(extension):
            return mime_type
    return None

"""Map line-based ad blocks to audio time and build the skip map.

Times are interpolated from word positions assuming a constant speech rate
across the episode. No transcript format carries timing that could do
better uniformly, so this is an approximation, not a guarantee.
"""

import logging
import math
from typing import Optional

from .models import AdBlock, SkipSegment, SkipType, TranscriptLine

logger = logging.getLogger(__name__)

# Share of the episode at each end that counts as pre-roll / post-roll
EDGE_FRACTION = 0.1


def map_blocks_to_timestamps(
    blocks: list[AdBlock],
    lines: list[TranscriptLine],
    duration: float,
) -> list[AdBlock]:
    """Fill in word offsets and times for each block.

    Args:
        blocks: Ad blocks with line ranges set.
        lines: The full line model.
        duration: Audio duration in seconds.

    Returns:
        The blocks with ``start_word``, ``end_word``, ``start_time_sec`` and
        ``end_time_sec`` filled in. With no lines, no words or no duration
        the blocks are returned unchanged; a block whose lines do not exist
        is passed through untouched.
    """
    if not lines or duration <= 0:
        return list(blocks)

    total = lines[-1].cumulative_word_count
    if total <= 0:
        return list(blocks)

    line_map = {line.line_number: line for line in lines}
    mapped: list[AdBlock] = []

    for block in blocks:
        start_line = line_map.get(block.start_line)
        end_line = line_map.get(block.end_line)
        if start_line is None or end_line is None:
            logger.debug(f"Block {block.start_line}-{block.end_line} does not resolve, leaving unmapped")
            mapped.append(block)
            continue

        # Words spoken before the block begins / through its last line
        start_word = start_line.cumulative_word_count - start_line.word_count
        end_word = end_line.cumulative_word_count

        mapped.append(block.model_copy(update={
            "start_word": start_word,
            "end_word": end_word,
            "start_time_sec": start_word / total * duration,
            "end_time_sec": end_word / total * duration,
        }))

    return mapped


def _round_half_up(value: float, digits: int) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def classify_block(start: float, end: float, duration: float) -> SkipType:
    """Label a time range by where it sits in the episode."""
    if duration <= 0:
        return "mid-roll"
    if start < duration * EDGE_FRACTION:
        return "pre-roll"
    if end > duration * (1 - EDGE_FRACTION):
        return "post-roll"
    return "mid-roll"


def build_skip_map(blocks: list[AdBlock], duration: float, precision: int = 0) -> list[SkipSegment]:
    """Turn mapped ad blocks into the skip map a player consumes.

    Args:
        blocks: Ad blocks after timestamp mapping.
        duration: Audio duration in seconds.
        precision: Decimal places kept; 0 for whole seconds, 1 for 0.1s.

    Returns:
        Segments sorted by start time. Unmapped or empty blocks are left
        out and strictly overlapping ranges are merged; touching ranges
        stay separate.
    """
    segments: list[SkipSegment] = []

    for block in sorted(blocks, key=lambda b: (b.start_time_sec, b.start_line)):
        start = _round_half_up(block.start_time_sec, precision)
        end = _round_half_up(block.end_time_sec, precision)
        if end <= start:
            continue

        if segments and start < segments[-1].end_time:
            previous = segments[-1]
            segments[-1] = SkipSegment(
                start_time=previous.start_time,
                end_time=max(previous.end_time, end),
                type=previous.type,
                confidence=max(previous.confidence, block.confidence),
                reason=f"{previous.reason}; {block.reason}",
            )
            continue

        segments.append(
            SkipSegment(
                start_time=start,
                end_time=end,
                type=classify_block(block.start_time_sec, block.end_time_sec, duration),
                confidence=block.confidence,
                reason=block.reason,
            )
        )

    return segments


def find_active_segment(time: float, skip_map: list[SkipSegment]) -> Optional[SkipSegment]:
    """Return the segment containing ``time`` (start inclusive, end exclusive)."""
    for segment in skip_map:
        if segment.start_time <= time < segment.end_time:
            return segment
    return None


def next_content_time(time: float, skip_map: list[SkipSegment]) -> float:
    """Where playback should continue from ``time``.

    Touching segments are followed through, so skipping into the start of
    the next ad skips that one too.
    """
    segment = find_active_segment(time, skip_map)
    while segment is not None:
        time = segment.end_time
        segment = find_active_segment(time, skip_map)
    return time

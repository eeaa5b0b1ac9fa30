"""Text renderings of a line model: LLM prompt, annotated transcript, summary."""

from .line_model import total_words
from .models import AdBlock, AnalysisReport, TranscriptLine

TIMELINE_WIDTH = 76


def format_timestamp(seconds: float) -> str:
    """Format seconds as M:SS or H:MM:SS."""
    seconds = max(0.0, seconds)
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_line(line: TranscriptLine) -> str:
    speaker = f"{line.speaker}: " if line.speaker else ""
    return f"[{line.line_number}] {speaker}{line.text}"


def render_numbered_transcript(lines: list[TranscriptLine], max_chars: int | None = None) -> str:
    """Render lines as ``[n] SPEAKER: text``, one per row.

    Args:
        lines: The line model.
        max_chars: Size budget; rendering stops before the first row that
            would exceed it. None means no limit.

    Returns:
        The numbered transcript text.
    """
    rows: list[str] = []
    size = 0
    for line in lines:
        row = format_line(line)
        added = len(row) + (1 if rows else 0)
        if max_chars is not None and size + added > max_chars:
            break
        rows.append(row)
        size += added
    return "\n".join(rows)


def approximate_line_time(line: TranscriptLine, words: int, duration: float) -> float:
    """Time at which ``line`` ends, assuming a constant speech rate."""
    if words <= 0:
        return 0.0
    return line.cumulative_word_count / words * duration


def generate_annotated_transcript(
    lines: list[TranscriptLine],
    blocks: list[AdBlock],
    duration: float,
) -> str:
    """Generate a human-readable transcript with ad blocks marked.

    Args:
        lines: The line model.
        blocks: Mapped ad blocks.
        duration: Audio duration in seconds.

    Returns:
        A formatted string with approximate times and START/END markers.
    """
    if not lines:
        return "No transcript lines found."

    words = total_words(lines)
    block_by_line: dict[int, AdBlock] = {}
    for block in blocks:
        for n in range(block.start_line, block.end_line + 1):
            block_by_line[n] = block

    output_lines: list[str] = [
        f"# Lines: {len(lines)}, words: {words}",
        f"# Duration: {format_timestamp(duration)}",
        f"# Ad blocks: {len(blocks)}",
        "",
    ]

    current: AdBlock | None = None
    for line in lines:
        block = block_by_line.get(line.line_number)
        if current is not None and block is not current:
            output_lines.append("### END AD ###")
            current = None
        if block is not None and current is None:
            output_lines.append(
                f"### START AD (lines {block.start_line}-{block.end_line}) "
                f"[{format_timestamp(block.start_time_sec)} - {format_timestamp(block.end_time_sec)}] "
                f"(confidence: {block.confidence:.0%}) ###"
            )
            output_lines.append(f"### Reason: {block.reason} ###")
            current = block

        timestamp = format_timestamp(approximate_line_time(line, words, duration))
        marker = ">>" if block is not None else "  "
        speaker = f"{line.speaker}: " if line.speaker else ""
        output_lines.append(f"[{timestamp}] {line.line_number:3d} {marker} {speaker}{line.text}")

    if current is not None:
        output_lines.append("### END AD ###")

    return "\n".join(output_lines)


def render_timeline(blocks: list[AdBlock], duration: float, width: int = TIMELINE_WIDTH) -> str:
    """Fixed-width bar: ``░`` for content, ``█`` for ad time."""
    bar = ["░"] * width
    if duration > 0:
        for block in blocks:
            start = int(block.start_time_sec / duration * width)
            end = min(width - 1, int(block.end_time_sec / duration * width))
            for i in range(max(0, start), end + 1):
                bar[i] = "█"

    end_label = format_timestamp(duration)
    scale = "0:00" + " " * max(1, width - 4 - len(end_label)) + end_label
    return f"{scale}\n{''.join(bar)}"


def generate_summary(report: AnalysisReport) -> str:
    """Generate a summary of located ad blocks.

    Args:
        report: The analysis report.

    Returns:
        A formatted summary string.
    """
    summary = report.summary
    lines = [
        "skipmap Analysis Summary",
        "=" * 40,
        f"Episode: {report.title or '(untitled)'}",
        f"Duration: {format_timestamp(report.duration_sec)}",
        f"Transcript source: {report.transcript_source}",
        f"Lines: {len(report.lines)}, words: {report.qa.transcript_words}",
        f"Validation: {'ok' if report.validation.is_valid else 'FAILED'} ({report.validation.reason})",
        f"Strategy: {report.strategy}",
        "",
    ]

    if report.ad_blocks:
        lines.append("Ad Blocks:")
        lines.append("-" * 40)
        for i, block in enumerate(report.ad_blocks, 1):
            duration = block.end_time_sec - block.start_time_sec
            lines.append(
                f"{i}. Lines {block.start_line}-{block.end_line}  "
                f"{format_timestamp(block.start_time_sec)} - {format_timestamp(block.end_time_sec)} "
                f"({duration:.0f}s, ~{block.end_word - block.start_word} words, {block.confidence:.0%} confidence)"
            )
            lines.append(f"   Reason: {block.reason}")
            if block.text_preview:
                lines.append(f'   Text: "{block.text_preview}"')

        lines.append("")
        lines.append(
            f"Total ad time: ~{summary.total_ad_time_sec:.0f}s ({format_timestamp(summary.total_ad_time_sec)})"
        )
        lines.append(
            f"Content time: ~{summary.content_time_sec:.0f}s ({format_timestamp(summary.content_time_sec)})"
        )
        lines.append(
            f"Ad words: {summary.total_ad_words} / {report.qa.transcript_words} ({summary.ad_word_percent:.1f}%)"
        )
        lines.append("")
        lines.append("Timeline:")
        lines.append(render_timeline(report.ad_blocks, report.duration_sec))
    else:
        lines.append("No ad blocks located.")

    if report.source_errors:
        lines.append("")
        lines.append("Source errors:")
        for error in report.source_errors:
            lines.append(f"- {error}")

    return "\n".join(lines)

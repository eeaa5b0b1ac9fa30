"""CLI for skipmap."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer

from . import __version__
from .ad_llm import build_provider_registry
from .audio import parse_duration
from .config import Config, load_config
from .json_recovery import MalformedResponse, recover_json
from .models import AnalysisReport, EpisodeRequest, TranscriptFile
from .pipeline import AnalysisPipeline
from .transcribe import WhisperTranscriber
from .transcript import format_line, generate_annotated_transcript, generate_summary
from .transcript_formats import UnsupportedFormat, detect_format, guess_mime_type, parse_transcript_file
from .validator import validate_transcript

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="skipmap",
    help="Build ad skip maps for podcast episodes from their transcripts.",
    add_completion=False,
)


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_config_or_exit(config_path: Optional[Path]) -> Config:
    try:
        return load_config(str(config_path) if config_path else None)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _resolve_type(path_or_url: str, mime_type: Optional[str]) -> str:
    resolved = mime_type or guess_mime_type(path_or_url)
    if not resolved or detect_format(resolved) is None:
        typer.echo(
            f"Error: Cannot determine a supported transcript type for {path_or_url}. Use --type.",
            err=True,
        )
        raise typer.Exit(1)
    return resolved


def _write_outputs(report: AnalysisReport, out: Path, transcript_out: Optional[Path]) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        f.write(report.model_dump_json(indent=2))

    if transcript_out:
        transcript_out.parent.mkdir(parents=True, exist_ok=True)
        with open(transcript_out, "w") as f:
            f.write(generate_annotated_transcript(report.lines, report.ad_blocks, report.duration_sec))
        typer.echo(f"Transcript written to {transcript_out}")

    typer.echo()
    typer.echo(generate_summary(report))
    typer.echo()
    typer.echo(f"Output written to {out}")


@app.command()
def analyze(
    out: Annotated[Path, typer.Option("--out", "-o", help="Output JSON report path")],
    transcript_out: Annotated[
        Optional[Path],
        typer.Option("--transcript", "-t", help="Output annotated transcript path"),
    ] = None,
    episode_json: Annotated[
        Optional[Path],
        typer.Option("--episode", "-e", help="JSON file describing the episode"),
    ] = None,
    title: Annotated[str, typer.Option("--title", help="Episode title")] = "",
    description: Annotated[str, typer.Option("--description", help="Episode description")] = "",
    duration: Annotated[
        str, typer.Option("--duration", help="Duration as HH:MM:SS, MM:SS or seconds")
    ] = "",
    audio_url: Annotated[
        Optional[str], typer.Option("--audio-url", help="Episode audio URL (for transcription)")
    ] = None,
    transcript_url: Annotated[
        Optional[str], typer.Option("--transcript-url", help="Transcript page URL")
    ] = None,
    transcript_files: Annotated[
        Optional[list[str]],
        typer.Option("--transcript-file", help="Structured transcript URL; type from extension"),
    ] = None,
    local_file: Annotated[
        Optional[Path],
        typer.Option("--local", "-f", help="Analyze a local transcript file instead of fetching"),
    ] = None,
    mime_type: Annotated[
        Optional[str], typer.Option("--type", help="MIME type of --local (default: from extension)")
    ] = None,
    llm_provider: Annotated[
        Optional[str],
        typer.Option("--llm-provider", "-l", help="LLM provider (none, openai or gemini)"),
    ] = None,
    transcribe: Annotated[
        bool, typer.Option("--transcribe", help="Transcribe episode audio with faster-whisper")
    ] = False,
    config_path: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Path to config file")
    ] = None,
) -> None:
    """Analyze an episode and write its skip map report."""
    config = _load_config_or_exit(config_path)

    # Override config from command line
    if llm_provider:
        config.llm.provider = llm_provider
    if transcribe:
        config.transcription.enabled = True

    if episode_json:
        try:
            episode = EpisodeRequest.model_validate_json(episode_json.read_text())
        except (OSError, ValueError) as e:
            typer.echo(f"Error reading episode file: {e}", err=True)
            raise typer.Exit(1)
    else:
        files = [
            TranscriptFile(url=url, type=_resolve_type(url, None))
            for url in transcript_files or []
        ]
        episode = EpisodeRequest(
            title=title,
            description=description,
            duration_sec=parse_duration(duration),
            audio_url=audio_url,
            transcript_url=transcript_url,
            transcript_files=files,
        )

    transcriber = WhisperTranscriber.from_config(config.transcription) if config.transcription.enabled else None
    pipeline = AnalysisPipeline(
        config,
        providers=build_provider_registry(),
        transcriber=transcriber,
    )

    try:
        if local_file:
            resolved_type = _resolve_type(str(local_file), mime_type)
            try:
                content = local_file.read_text()
            except OSError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(1)
            lines = parse_transcript_file(content, resolved_type)
            source = detect_format(resolved_type)
            typer.echo(f"Parsed {len(lines)} lines from {local_file}")
            report = pipeline.analyze_transcript(
                lines,
                episode.duration_sec,
                title=episode.title,
                source=source,
            )
        else:
            report = pipeline.analyze(episode)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _write_outputs(report, out, transcript_out)


@app.command()
def parse(
    input_file: Annotated[Path, typer.Argument(help="Transcript file to parse")],
    mime_type: Annotated[
        Optional[str], typer.Option("--type", help="MIME type (default: from extension)")
    ] = None,
    duration: Annotated[
        str, typer.Option("--duration", help="Audio duration, to run the quality check")
    ] = "",
) -> None:
    """Build and print the numbered line model for a transcript file."""
    if not input_file.exists():
        typer.echo(f"Error: File not found: {input_file}", err=True)
        raise typer.Exit(1)

    resolved_type = _resolve_type(str(input_file), mime_type)
    try:
        lines = parse_transcript_file(input_file.read_text(), resolved_type)
    except UnsupportedFormat as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    for line in lines:
        typer.echo(format_line(line))

    total = lines[-1].cumulative_word_count if lines else 0
    typer.echo()
    typer.echo(f"Total: {len(lines)} lines, {total} words")

    seconds = parse_duration(duration)
    if seconds:
        result = validate_transcript(lines, seconds)
        status = "ok" if result.is_valid else "FAILED"
        typer.echo(f"Validation: {status} ({result.reason})")


@app.command("recover-json")
def recover_json_command(
    input_file: Annotated[
        Optional[Path], typer.Argument(help="File with model output (default: stdin)")
    ] = None,
) -> None:
    """Recover the JSON value from a free-text model completion."""
    if input_file is not None:
        if not input_file.exists():
            typer.echo(f"Error: File not found: {input_file}", err=True)
            raise typer.Exit(1)
        text = input_file.read_text()
    else:
        text = sys.stdin.read()

    try:
        value = recover_json(text)
    except MalformedResponse as e:
        typer.echo(f"Error: {e}", err=True)
        if e.preview:
            typer.echo(f"Preview: {e.preview}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(value, indent=2, ensure_ascii=False))


@app.command()
def version() -> None:
    """Show the version of skipmap."""
    typer.echo(f"skipmap v{__version__}")


if __name__ == "__main__":
    app()

"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
progress lines, outlines, and script and audio summaries.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import GenerationError, PipelineStageError, SynthesisError, ValidationError
from .jobs.progress import ProgressEvent
from .models.datatypes import AudioResult, GeneratedScript, ScriptPreview

_DOMAIN_ERROR_STAGES: tuple[tuple[type[Exception], str], ...] = (
    (ValidationError, "validation"),
    (GenerationError, "script-generation"),
    (SynthesisError, "audio-synthesis"),
)


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1) from exc

    for error_type, stage in _DOMAIN_ERROR_STAGES:
        if isinstance(exc, error_type):
            typer.secho(
                f"{command_name} failed at stage `{stage}`: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            if isinstance(exc, ValidationError):
                for detail in exc.details:
                    typer.secho(
                        f"  - {detail.get('field', '?')}: {detail.get('message', '')}",
                        fg=typer.colors.RED,
                        err=True,
                    )
            break
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


class ProgressPrinter:
    """Progress sink printing one `[progress]` line per event."""

    def emit(self, event: ProgressEvent) -> None:
        """Print the event type and percentage, when known."""

        if event.progress is None:
            typer.echo(f"[progress] {event.type}")
        else:
            typer.echo(f"[progress] {event.type} {event.progress}%")


def echo_preview(preview: ScriptPreview) -> None:
    """Print outline title, duration targets, and numbered chapters."""

    typer.echo(f"Title: {preview.title}")
    typer.echo(f"Estimated duration (min): {preview.estimated_duration_minutes}")
    typer.echo(f"Word count target: {preview.word_count_target}")
    for chapter in preview.chapters:
        typer.echo(f"{chapter.number}. {chapter.title}")
        if chapter.description:
            typer.echo(f"   {chapter.description}")


def echo_script_summary(script: GeneratedScript) -> None:
    """Print script location, size, generation path, and per-chapter outcomes."""

    typer.echo(f"Script: {script.file_path or '(not written)'}")
    typer.echo(f"Title: {script.title}")
    typer.echo(f"Words: {script.word_count}")
    typer.echo(f"Estimated duration (min): {script.estimated_duration_minutes}")
    typer.echo(f"Generation path: {script.generation_path}")
    for stat in script.chapter_stats or ():
        status = "ok" if stat.passed_validation else f"degraded ({stat.reason})"
        typer.echo(
            f"  chapter {stat.chapter_number}: {stat.word_count}/{stat.expected_word_count} words, {status}"
        )


def echo_audio_summary(audio: AudioResult) -> None:
    """Print audio location, format, size, and chunk count."""

    typer.echo(f"Audio: {audio.output_path}")
    typer.echo(f"Format: {audio.format}")
    typer.echo(f"Size (bytes): {audio.file_size_bytes}")
    typer.echo(f"Chunks: {audio.chunk_count}")
    typer.echo(f"Estimated duration (s): {audio.estimated_duration_seconds}")

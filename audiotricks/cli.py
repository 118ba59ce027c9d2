"""Typer CLI entry point for AudioTricks."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from .config import get_settings, list_environment_settings
from .core.pipeline.orchestrator import build_orchestrator
from .core.pipeline.processing import process_audio
from .data.models import AudioFile, JobStatus
from .errors import AudioTricksError
from .logging import configure_logging, get_logger
from .services.factory import (
    ServiceConfigurationError,
    resolve_summary_backend,
    resolve_transcription_backend,
)
from .services.jobs import HttpJobStatusClient, JobStatusPoller

app = typer.Typer(help="AudioTricks audio transcription toolkit")
LOGGER = get_logger(__name__)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        configure_logging(logging.DEBUG, force=True)


def _print_progress(current: int, total: int) -> None:
    typer.echo(f"Transcribed chunk {current}/{total}", err=True)


def _print_stage(stage: str) -> None:
    typer.echo(f"Stage: {stage}", err=True)


@app.command()
def transcribe(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Audio file to transcribe"),
    backend: str = typer.Option("openai", help="Transcription backend: dummy/openai/proxy"),
    summary: str = typer.Option("none", help="Summary backend: none/dummy/openai"),
    style: Optional[str] = typer.Option(None, help="Summary style: formal/casual/technical/creative"),
    language: Optional[str] = typer.Option(None, help="Summary language code, e.g. 'en'"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
) -> None:
    """Transcribe an audio file, splitting it when it exceeds the upload limit."""

    configure_logging()
    settings = get_settings()
    try:
        transport = resolve_transcription_backend(backend)
        summarizer = resolve_summary_backend(summary)
    except (ServiceConfigurationError, AudioTricksError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    async def run():
        try:
            return await process_audio(
                AudioFile.from_path(path),
                build_orchestrator(transport, settings),
                summarizer,
                max_upload_bytes=settings.max_upload_bytes,
                style=style,
                language=language,
                on_stage=None if as_json else _print_stage,
                on_progress=None if as_json else _print_progress,
            )
        finally:
            await transport.aclose()
            if summarizer is not None:
                await summarizer.aclose()

    try:
        outcome = asyncio.run(run())
    except AudioTricksError as exc:
        LOGGER.debug("Processing %s failed", path, exc_info=True)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    transcript = outcome.transcript
    if as_json:
        payload = {
            "transcript": transcript.model_dump(),
            "summary": outcome.summary.model_dump() if outcome.summary else None,
            "processing_time": outcome.processing_time,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(transcript.text)
    typer.echo(
        f"\n{len(transcript.text.split())} words, {transcript.duration:.1f}s, "
        f"{transcript.chunk_count} chunk(s), processed in {outcome.processing_time:.2f}s"
    )
    if transcript.failed_chunks:
        failed = ", ".join(str(number) for number in transcript.failed_chunks)
        typer.echo(f"Warning: chunk(s) {failed} failed to process", err=True)
    if outcome.summary:
        typer.echo("\nSummary:")
        typer.echo(outcome.summary.summary)


@app.command()
def poll(
    job_id: str = typer.Argument(..., help="Processing job identifier"),
    interval: Optional[float] = typer.Option(None, help="Seconds between status checks"),
    max_attempts: Optional[int] = typer.Option(None, help="Status checks before giving up"),
) -> None:
    """Wait for a server-side processing job to finish."""

    configure_logging()
    settings = get_settings()

    def on_progress(progress: float, status: JobStatus) -> None:
        typer.echo(f"{status.value}: {progress:.0f}%")

    async def run():
        client = HttpJobStatusClient()
        poller = JobStatusPoller(
            client,
            interval=interval or settings.job_poll_interval,
            max_attempts=max_attempts or settings.job_poll_max_attempts,
            max_consecutive_errors=settings.job_poll_max_errors,
        )
        try:
            return await poller.poll(job_id, on_progress=on_progress)
        finally:
            await client.aclose()

    try:
        result = asyncio.run(run())
    except AudioTricksError as exc:
        LOGGER.debug("Polling job %s failed", job_id, exc_info=True)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(result, indent=2))


@app.command("settings")
def show_settings() -> None:
    """List configuration values and the environment variables that set them."""

    for entry in list_environment_settings():
        value = entry.value
        if "key" in entry.field or "token" in entry.field:
            value = "***" if value else None
        typer.echo(f"{entry.env_name}={value}")


if __name__ == "__main__":  # pragma: no cover
    app()

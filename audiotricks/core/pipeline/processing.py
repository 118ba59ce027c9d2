"""End-to-end processing: validate, transcribe, then summarise."""

from __future__ import annotations

import time
from pathlib import PurePath
from typing import Callable, Optional

from ...data.models import AudioFile, ProcessingOutcome
from ...errors import EmptyFileError, UnsupportedAudioError
from ...logging import get_logger
from ...services.notes.base import SummaryService
from ..cancellation import CancellationToken
from .orchestrator import ProgressCallback, TranscriptionOrchestrator

LOGGER = get_logger(__name__)

SUPPORTED_CONTENT_TYPES = frozenset(
    {
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/wave",
        "audio/x-wav",
        "audio/mp4",
        "audio/x-m4a",
        "audio/flac",
        "audio/x-flac",
        "audio/ogg",
        "audio/webm",
        "audio/opus",
    }
)

SUPPORTED_EXTENSIONS = frozenset({".mp3", ".wav", ".m4a", ".flac", ".ogg", ".opus", ".webm"})

StageCallback = Callable[[str], None]


def validate_audio_file(audio: AudioFile, max_upload_bytes: int) -> None:
    if audio.size == 0:
        raise EmptyFileError()
    if audio.size > max_upload_bytes:
        raise UnsupportedAudioError(
            f"File size must be less than {max_upload_bytes // (1024 * 1024)}MB."
        )
    suffix = PurePath(audio.filename).suffix.lower()
    if audio.content_type not in SUPPORTED_CONTENT_TYPES and suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedAudioError()


async def process_audio(
    audio: AudioFile,
    orchestrator: TranscriptionOrchestrator,
    summarizer: Optional[SummaryService] = None,
    *,
    max_upload_bytes: int,
    style: Optional[str] = None,
    language: Optional[str] = None,
    cancellation: Optional[CancellationToken] = None,
    on_stage: Optional[StageCallback] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ProcessingOutcome:
    """Transcribe ``audio`` and, when a summariser is given, summarise it."""

    validate_audio_file(audio, max_upload_bytes)
    started = time.monotonic()
    stages = []

    def enter(stage: str) -> None:
        stages.append(stage)
        if on_stage is None:
            return
        try:
            on_stage(stage)
        except Exception:  # pragma: no cover - callbacks should not break pipeline
            LOGGER.exception("Stage callback raised an exception")

    enter("transcribing")
    transcript = await orchestrator.transcribe(
        audio, cancellation=cancellation, on_progress=on_progress
    )

    summary = None
    if summarizer is not None:
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        enter("summarizing")
        summary = await summarizer.summarize(transcript, style=style, language=language)

    processing_time = round(time.monotonic() - started, 2)
    LOGGER.info("Processed %s in %.2fs", audio.filename, processing_time)
    return ProcessingOutcome(
        transcript=transcript,
        summary=summary,
        processing_time=processing_time,
        stages=stages,
    )


__all__ = ["SUPPORTED_CONTENT_TYPES", "process_audio", "validate_audio_file"]

"""Transcription orchestrator coordinating splitting, per-chunk calls and merging."""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Tuple

from ...config import Settings, get_settings
from ...data.models import AudioChunk, AudioFile, ChunkTranscriptionResult, MergedTranscript
from ...errors import AuthError, EmptyFileError, TranscriptionError, TranscriptionFailedError
from ...logging import get_logger
from ...services.transcription.base import TranscriptionTransport
from ...services.transcription.chunk import ChunkTranscriber
from ...utils.audio import AudioSplitter
from ...utils.retry import RetryPolicy
from ..cancellation import CancellationToken
from .merger import merge_transcription_results

LOGGER = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]

FAILED_CHUNK_TEMPLATE = "[Chunk {number} failed to process]"


class TranscriptionOrchestrator:
    """Top-level entry point for transcribing one audio file.

    Files at or below ``max_chunk_bytes`` go to the transcriber in one call.
    Larger files are split and their chunks transcribed strictly one after
    another, in recording order. A chunk that still fails once its retries
    are spent is replaced by a ``[Chunk N failed to process]`` placeholder and
    listed in ``MergedTranscript.failed_chunks``; authentication errors and
    cancellation abort the whole file, and so does a file where every chunk
    failed.
    """

    def __init__(
        self,
        transcriber: ChunkTranscriber,
        splitter: Optional[AudioSplitter] = None,
        max_chunk_bytes: Optional[int] = None,
    ) -> None:
        if max_chunk_bytes is None:
            max_chunk_bytes = splitter.max_chunk_bytes if splitter else get_settings().max_chunk_bytes
        self.transcriber = transcriber
        self.max_chunk_bytes = max_chunk_bytes
        self.splitter = splitter or AudioSplitter(max_chunk_bytes)

    def needs_split(self, audio: AudioFile) -> bool:
        return audio.size > self.max_chunk_bytes

    async def transcribe(
        self,
        audio: AudioFile,
        *,
        cancellation: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> MergedTranscript:
        if audio.size == 0:
            raise EmptyFileError()
        if cancellation is not None:
            cancellation.raise_if_cancelled()

        if not self.needs_split(audio):
            result = await self.transcriber.transcribe(audio, cancellation=cancellation)
            whole = AudioChunk(
                data=audio.data,
                start_time=0.0,
                end_time=result.duration or 0.0,
                content_type=audio.content_type,
            )
            self._report(on_progress, 1, 1)
            return merge_transcription_results([(whole, result)])

        LOGGER.info(
            "File size %.2fMB exceeds limit, splitting into chunks...",
            audio.size / 1024 / 1024,
        )
        split = await asyncio.to_thread(self.splitter.split, audio)
        total = len(split.chunks)
        LOGGER.info("Split into %d chunks, total duration: %.2fs", total, split.total_duration)

        results: List[Tuple[AudioChunk, ChunkTranscriptionResult]] = []
        for position, chunk in enumerate(split.chunks):
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            LOGGER.info(
                "Processing chunk %d/%d (%.2fMB)",
                position + 1,
                total,
                len(chunk.data) / 1024 / 1024,
            )
            try:
                result = await self.transcriber.transcribe(chunk, cancellation=cancellation)
            except AuthError:
                raise
            except TranscriptionError as exc:
                LOGGER.error("Chunk %d/%d failed: %s", position + 1, total, exc)
                result = ChunkTranscriptionResult(
                    text=FAILED_CHUNK_TEMPLATE.format(number=position + 1),
                    duration=chunk.duration,
                    failed=True,
                )
            else:
                LOGGER.info("Chunk %d/%d completed successfully", position + 1, total)
            results.append((chunk, result))
            self._report(on_progress, position + 1, total)

        if all(result.failed for _, result in results):
            raise TranscriptionFailedError()
        return merge_transcription_results(results)

    def _report(self, on_progress: Optional[ProgressCallback], current: int, total: int) -> None:
        if on_progress is None:
            return
        try:
            on_progress(current, total)
        except Exception:  # pragma: no cover - callbacks should not break pipeline
            LOGGER.exception("Progress callback raised an exception")


def build_orchestrator(
    transport: TranscriptionTransport,
    settings: Optional[Settings] = None,
) -> TranscriptionOrchestrator:
    """Wire an orchestrator for ``transport`` from application settings."""

    settings = settings or get_settings()
    policy = RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        delay=settings.retry_delay,
        backoff=settings.retry_backoff,
    )
    splitter = AudioSplitter(
        settings.max_chunk_bytes,
        target_sample_rate=settings.split_sample_rate,
        mono=settings.split_mono,
        ffmpeg_binary=settings.ffmpeg_binary,
    )
    return TranscriptionOrchestrator(
        ChunkTranscriber(transport, policy),
        splitter=splitter,
        max_chunk_bytes=settings.max_chunk_bytes,
    )


__all__ = [
    "FAILED_CHUNK_TEMPLATE",
    "TranscriptionOrchestrator",
    "build_orchestrator",
]

"""Transcribe a single chunk with retry and cancellation."""

from __future__ import annotations

import asyncio
from typing import Optional, Union

from ...core.cancellation import CancellationToken
from ...data.models import AudioChunk, AudioFile, ChunkTranscriptionResult
from ...errors import TransientAPIError
from ...logging import get_logger
from ...utils.retry import RetryPolicy, retry_async
from .base import TranscriptionTransport

LOGGER = get_logger(__name__)


class ChunkTranscriber:
    """Normalise one transport call into a :class:`ChunkTranscriptionResult`.

    Only :class:`~audiotricks.errors.TransientAPIError` is retried. Credential
    and request errors surface on the first attempt, and a fired cancellation
    token aborts the in-flight request without scheduling another one.
    """

    def __init__(
        self,
        transport: TranscriptionTransport,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy()

    async def transcribe(
        self,
        audio: Union[AudioChunk, AudioFile],
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> ChunkTranscriptionResult:
        label = audio.filename

        async def attempt() -> ChunkTranscriptionResult:
            if cancellation is None:
                return await self.transport.transcribe(audio.data, audio.filename, audio.content_type)
            cancellation.raise_if_cancelled()
            return await cancellation.run(
                self.transport.transcribe(audio.data, audio.filename, audio.content_type)
            )

        def on_retry(attempt_number: int, exc: BaseException, wait: float) -> None:
            LOGGER.warning(
                "Transcription of %s failed on attempt %d/%d: %s; retrying in %.1fs",
                label,
                attempt_number,
                self.retry_policy.max_attempts,
                exc,
                wait,
            )

        result = await retry_async(
            attempt,
            self.retry_policy,
            retry_on=(TransientAPIError,),
            sleep=cancellation.sleep if cancellation is not None else asyncio.sleep,
            on_retry=on_retry,
        )

        if result.duration is None and isinstance(audio, AudioChunk):
            result = result.model_copy(update={"duration": audio.duration})
        return result


__all__ = ["ChunkTranscriber"]

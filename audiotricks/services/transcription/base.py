"""Transcription transport abstractions."""

from __future__ import annotations

import abc

from ...data.models import ChunkTranscriptionResult


class TranscriptionTransport(abc.ABC):
    """Send one audio payload to a speech-to-text service.

    Implementations raise :class:`~audiotricks.errors.AuthError` for
    credential problems, :class:`~audiotricks.errors.TransientAPIError` for
    failures worth retrying and
    :class:`~audiotricks.errors.TranscriptionRequestError` for everything the
    service rejected outright.
    """

    name = "transport"

    @abc.abstractmethod
    async def transcribe(
        self, data: bytes, filename: str, content_type: str
    ) -> ChunkTranscriptionResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the transport."""


__all__ = ["TranscriptionTransport"]

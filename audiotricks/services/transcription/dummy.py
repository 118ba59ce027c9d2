"""Dummy transcription transport for testing or offline usage."""

from __future__ import annotations

from typing import List

from ...data.models import ChunkTranscriptionResult, TranscriptSegment
from .base import TranscriptionTransport


class DummyTranscriptionTransport(TranscriptionTransport):
    name = "dummy"

    def __init__(self) -> None:
        self.calls: List[str] = []

    async def transcribe(
        self, data: bytes, filename: str, content_type: str
    ) -> ChunkTranscriptionResult:
        self.calls.append(filename)
        text = (
            f"Dummy transcript for {filename} ({len(data)} bytes). "
            "Replace with a real transcription backend."
        )
        return ChunkTranscriptionResult(
            text=text,
            segments=[TranscriptSegment(start=0.0, end=1.0, text=text)],
        )


__all__ = ["DummyTranscriptionTransport"]

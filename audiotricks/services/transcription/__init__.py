"""Transcription transports and the per-chunk transcriber."""

from .base import TranscriptionTransport
from .chunk import ChunkTranscriber
from .dummy import DummyTranscriptionTransport

__all__ = ["ChunkTranscriber", "DummyTranscriptionTransport", "TranscriptionTransport"]

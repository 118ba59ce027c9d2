"""Factories for runtime service selection."""

from __future__ import annotations

from typing import Optional

from .notes.base import SummaryService
from .notes.dummy import DummySummaryService
from .notes.openai_notes import OpenAISummaryService
from .transcription.base import TranscriptionTransport
from .transcription.dummy import DummyTranscriptionTransport
from .transcription.openai_client import OpenAITranscriptionTransport
from .transcription.proxy import ProxyTranscriptionTransport


class ServiceConfigurationError(ValueError):
    """Raised when an unknown backend is requested."""


def _normalise(name: Optional[str]) -> str:
    if not name:
        return "none"
    return name.strip().lower()


def resolve_transcription_backend(name: Optional[str]) -> TranscriptionTransport:
    backend = _normalise(name)
    if backend == "dummy":
        return DummyTranscriptionTransport()
    if backend == "openai":
        return OpenAITranscriptionTransport()
    if backend == "proxy":
        return ProxyTranscriptionTransport()
    raise ServiceConfigurationError(f"Unknown transcription backend: {name}")


def resolve_summary_backend(name: Optional[str]) -> Optional[SummaryService]:
    backend = _normalise(name)
    if backend in {"", "none", "off"}:
        return None
    if backend == "dummy":
        return DummySummaryService()
    if backend == "openai":
        return OpenAISummaryService()
    raise ServiceConfigurationError(f"Unknown summary backend: {name}")


__all__ = [
    "ServiceConfigurationError",
    "resolve_summary_backend",
    "resolve_transcription_backend",
]

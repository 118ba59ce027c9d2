"""Dummy summary generator for offline usage."""

from __future__ import annotations

from typing import Optional

from ...data.models import MergedTranscript, SummaryDocument
from .base import SummaryService


class DummySummaryService(SummaryService):
    async def summarize(
        self,
        transcript: MergedTranscript,
        *,
        style: Optional[str] = None,
        language: Optional[str] = None,
    ) -> SummaryDocument:
        text = transcript.text
        summary = text[:280] + ("..." if len(text) > 280 else "")
        return SummaryDocument(
            summary=summary or "No transcript available.",
            language=language or "en",
            total_duration=transcript.duration,
            word_count=len(text.split()),
        )


__all__ = ["DummySummaryService"]

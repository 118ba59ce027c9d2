"""Summary generation service abstractions."""

from __future__ import annotations

import abc
from typing import Optional

from ...data.models import MergedTranscript, SummaryDocument

SUMMARY_STYLES = ("formal", "casual", "technical", "creative")


class SummaryService(abc.ABC):
    @abc.abstractmethod
    async def summarize(
        self,
        transcript: MergedTranscript,
        *,
        style: Optional[str] = None,
        language: Optional[str] = None,
    ) -> SummaryDocument:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the service."""


__all__ = ["SUMMARY_STYLES", "SummaryService"]

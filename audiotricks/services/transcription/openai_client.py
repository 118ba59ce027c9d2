"""OpenAI powered transcription transport."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from openai import OpenAIError

from ...config import get_settings
from ...data.models import ChunkTranscriptionResult, TranscriptSegment
from ...logging import get_logger
from ..openai_support import build_async_client, error_message, map_openai_error
from .base import TranscriptionTransport

LOGGER = get_logger(__name__)


class OpenAITranscriptionTransport(TranscriptionTransport):
    """Call the OpenAI audio transcription endpoint directly."""

    name = "openai"

    def __init__(
        self,
        client: Any = None,
        model: Optional[str] = None,
        language: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.model = model or settings.openai_transcription_model
        self.language = language or settings.transcription_language
        self.client = client if client is not None else build_async_client(settings, api_key=api_key)
        self._format_index = 0

    async def transcribe(
        self, data: bytes, filename: str, content_type: str
    ) -> ChunkTranscriptionResult:
        LOGGER.info("Requesting OpenAI transcription for %s (%d bytes)", filename, len(data))
        formats = self._candidate_response_formats()
        response: Any = None
        index = self._format_index
        while index < len(formats):
            response_format = formats[index]
            request: Dict[str, Any] = {
                "model": self.model,
                "file": (filename, data, content_type),
                "response_format": response_format,
            }
            if self.language:
                request["language"] = self.language
            try:
                response = await self.client.audio.transcriptions.create(**request)
                break
            except OpenAIError as exc:
                if self._is_response_format_error(exc) and index < len(formats) - 1:
                    LOGGER.info(
                        "Response format '%s' is not supported by model '%s'; retrying with '%s'",
                        response_format,
                        self.model,
                        formats[index + 1],
                    )
                    index += 1
                    continue
                raise map_openai_error(exc) from exc

        # Later chunks go straight to the format that worked.
        self._format_index = index
        return self._parse_transcription_response(response)

    async def aclose(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()

    def _candidate_response_formats(self) -> List[str]:
        return ["verbose_json", "json", "text"]

    def _is_response_format_error(self, exc: Exception) -> bool:
        message = error_message(exc)
        return "response_format" in message and "unsupported" in message.lower()

    def _parse_transcription_response(self, response: Any) -> ChunkTranscriptionResult:
        if response is None:
            return ChunkTranscriptionResult()

        data: Optional[Dict[str, Any]] = None
        if isinstance(response, dict):
            data = response
        elif hasattr(response, "model_dump"):
            data = response.model_dump()
        elif isinstance(response, str):
            return ChunkTranscriptionResult(text=response.strip())

        if data is None:
            data = {
                "text": getattr(response, "text", ""),
                "segments": getattr(response, "segments", None),
                "duration": getattr(response, "duration", None),
                "language": getattr(response, "language", None),
            }

        segments: List[TranscriptSegment] = []
        for segment in data.get("segments") or []:
            if isinstance(segment, dict):
                start = segment.get("start")
                end = segment.get("end")
                segment_text = str(segment.get("text") or "")
            else:
                start = getattr(segment, "start", None)
                end = getattr(segment, "end", None)
                segment_text = str(getattr(segment, "text", "") or "")
            if start is None or end is None:
                continue
            segments.append(
                TranscriptSegment(start=float(start), end=float(end), text=segment_text.strip())
            )

        duration = data.get("duration")
        return ChunkTranscriptionResult(
            text=str(data.get("text") or "").strip(),
            segments=segments,
            duration=float(duration) if duration is not None else None,
            language=data.get("language"),
        )


__all__ = ["OpenAITranscriptionTransport"]

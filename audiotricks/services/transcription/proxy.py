"""Transcription through the AudioTricks backend API proxy.

The proxy keeps the OpenAI key on the server; the client authenticates with
its own bearer token and posts the audio as multipart form data.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ...config import get_settings
from ...data.models import ChunkTranscriptionResult, TranscriptSegment
from ...errors import AuthError, TranscriptionError, TranscriptionRequestError, TransientAPIError
from ...logging import get_logger
from .base import TranscriptionTransport

LOGGER = get_logger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or response.reason_phrase)
    if isinstance(payload, dict):
        return str(error or payload.get("message") or response.reason_phrase)
    return response.reason_phrase


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


def raise_for_status(response: httpx.Response) -> None:
    """Map an HTTP error response onto the AudioTricks error taxonomy."""

    status = response.status_code
    if status < 400:
        return
    detail = _error_detail(response)
    if status in (401, 403):
        raise AuthError()
    if status == 429:
        raise TransientAPIError(
            "Rate limit exceeded. Please wait a minute and try again.",
            status_code=status,
            retry_after=_retry_after(response),
        )
    if status >= 500:
        raise TransientAPIError(
            f"Service temporarily unavailable ({detail}). Please try again later.",
            status_code=status,
            retry_after=_retry_after(response),
        )
    raise TranscriptionRequestError(f"Transcription failed: {detail}", status_code=status)


def _parse_payload(payload: Any) -> ChunkTranscriptionResult:
    # The proxy wraps its payload as {"success": ..., "data": {...}} on newer deployments.
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]

    segments = [
        TranscriptSegment(
            start=float(segment["start"]),
            end=float(segment["end"]),
            text=str(segment.get("text") or "").strip(),
        )
        for segment in payload.get("segments") or []
        if isinstance(segment, dict)
        and segment.get("start") is not None
        and segment.get("end") is not None
    ]
    duration = payload.get("duration")
    return ChunkTranscriptionResult(
        text=str(payload.get("text") or "").strip(),
        segments=segments,
        duration=float(duration) if duration else None,
        language=payload.get("language"),
    )


class ProxyTranscriptionTransport(TranscriptionTransport):
    name = "proxy"

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        model: Optional[str] = None,
        language: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        base_url = base_url or settings.proxy_url
        if not base_url:
            raise TranscriptionError(
                "Proxy URL not configured. Set AUDIOTRICKS_PROXY_URL to use the proxy backend."
            )
        self.base_url = base_url.rstrip("/")
        self.model = model or settings.openai_transcription_model
        self.language = language or settings.transcription_language
        headers: Dict[str, str] = {}
        token = token or settings.proxy_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.request_timeout)
        self.headers = headers

    async def transcribe(
        self, data: bytes, filename: str, content_type: str
    ) -> ChunkTranscriptionResult:
        form: Dict[str, Any] = {"model": self.model}
        if self.language:
            form["language"] = self.language
        LOGGER.info("Requesting proxied transcription for %s (%d bytes)", filename, len(data))
        try:
            response = await self.client.post(
                f"{self.base_url}/transcribe",
                files={"audioFile": (filename, data, content_type)},
                data=form,
                headers=self.headers,
            )
        except httpx.TransportError as exc:
            raise TransientAPIError(
                "Network error. Please check your internet connection and try again."
            ) from exc

        raise_for_status(response)
        try:
            return _parse_payload(response.json())
        except (ValueError, AttributeError, TypeError, KeyError) as exc:
            raise TransientAPIError("Transcription service returned an invalid response.") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


__all__ = ["ProxyTranscriptionTransport", "raise_for_status"]

"""Shared OpenAI client construction and error mapping."""

from __future__ import annotations

from typing import Optional

import openai
from openai import AsyncOpenAI, OpenAIError

from ..config import Settings, get_settings
from ..errors import AuthError, TranscriptionError, TranscriptionRequestError, TransientAPIError


def build_async_client(settings: Optional[Settings] = None, api_key: Optional[str] = None):
    """Create an ``AsyncOpenAI`` client with SDK level retries disabled.

    Retrying is owned by :mod:`audiotricks.utils.retry` so that attempts are
    counted in one place.
    """

    settings = settings or get_settings()
    client_kwargs = {"max_retries": 0, "timeout": settings.request_timeout}
    key = api_key or settings.openai_api_key
    if key:
        client_kwargs["api_key"] = key

    try:
        return AsyncOpenAI(**client_kwargs)
    except OpenAIError as exc:
        message = str(exc)
        if "api_key" in message.lower():
            raise AuthError(
                "OpenAI API key not configured. Set the OPENAI_API_KEY environment variable "
                "or configure AUDIOTRICKS_OPENAI_API_KEY."
            ) from exc
        raise TranscriptionError(f"Failed to initialise OpenAI client: {message}") from exc


def _retry_after(exc: Exception) -> Optional[float]:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


def error_message(exc: Exception) -> str:
    return str(getattr(exc, "message", None) or exc)


def map_openai_error(exc: Exception) -> TranscriptionError:
    """Translate an ``openai`` exception into the AudioTricks taxonomy."""

    message = error_message(exc)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AuthError("Invalid API key. Please check your OpenAI API key and try again.")
    if isinstance(exc, openai.RateLimitError):
        return TransientAPIError(
            "OpenAI rate limit exceeded. Please wait a minute and try again.",
            status_code=429,
            retry_after=_retry_after(exc),
        )
    if isinstance(exc, openai.APIConnectionError):
        return TransientAPIError(
            "Network error. Please check your internet connection and try again."
        )
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500:
            return TransientAPIError(
                "OpenAI service is temporarily unavailable. Please try again later.",
                status_code=exc.status_code,
                retry_after=_retry_after(exc),
            )
        return TranscriptionRequestError(f"Transcription failed: {message}", status_code=exc.status_code)
    return TranscriptionRequestError(f"Transcription failed: {message}")


__all__ = ["build_async_client", "error_message", "map_openai_error"]

"""Global configuration using Pydantic settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEGABYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application wide settings loaded from environment variables."""

    openai_api_key: Optional[str] = None
    openai_transcription_model: str = "whisper-1"
    openai_summary_model: str = "gpt-4o-mini"

    proxy_url: Optional[str] = None
    proxy_token: Optional[str] = None
    transcription_language: Optional[str] = None

    jobs_api_url: str = "http://localhost:8000/api"
    jobs_api_token: Optional[str] = None
    job_poll_interval: float = Field(default=5.0, gt=0)
    job_poll_max_attempts: int = Field(default=60, ge=1)
    job_poll_max_errors: int = Field(default=3, ge=0)

    # Stay below the 25 MB upload limit of the transcription endpoint.
    max_chunk_bytes: int = Field(default=24 * MEGABYTE, gt=0)
    max_upload_bytes: int = Field(default=100 * MEGABYTE, gt=0)
    split_sample_rate: Optional[int] = 16_000
    split_mono: bool = True
    ffmpeg_binary: str = "ffmpeg"

    retry_max_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)
    retry_backoff: float = Field(default=2.0, ge=1)
    request_timeout: float = 600.0

    summary_style: str = "formal"
    summary_language: str = "en"

    model_config = SettingsConfigDict(
        env_prefix="AUDIOTRICKS_",
        env_file=".env",
        case_sensitive=False,
    )


_settings: Optional[Settings] = None

_ENV_PREFIX: str = (Settings.model_config.get("env_prefix") or "").upper()


@dataclass
class EnvironmentSetting:
    """Metadata about a configuration option backed by an environment variable."""

    field: str
    env_name: str
    value: Any
    default: Any


def _field_default(field_info) -> Any:
    if field_info.default_factory is not None:  # type: ignore[truthy-function]
        return field_info.default_factory()
    return field_info.default


def list_environment_settings(settings: Optional[Settings] = None) -> Iterable[EnvironmentSetting]:
    """Return metadata for all environment-backed settings."""

    settings = settings or get_settings()
    for name, field in Settings.model_fields.items():
        yield EnvironmentSetting(
            field=name,
            env_name=f"{_ENV_PREFIX}{name}".upper(),
            value=getattr(settings, name),
            default=_field_default(field),
        )


def get_settings() -> Settings:
    """Return a singleton instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""

    global _settings
    _settings = None


__all__ = [
    "EnvironmentSetting",
    "MEGABYTE",
    "Settings",
    "get_settings",
    "list_environment_settings",
    "reset_settings",
]

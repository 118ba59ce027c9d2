"""Clients for the processing job status API."""

from __future__ import annotations

import abc
from typing import Dict, Optional

import httpx
from pydantic import ValidationError

from ...config import get_settings
from ...data.models import ProcessingJob
from ...errors import AuthError, JobError, JobNotFoundError, TransientAPIError


class JobStatusClient(abc.ABC):
    @abc.abstractmethod
    async def get_job(self, job_id: str) -> ProcessingJob:
        raise NotImplementedError


class HttpJobStatusClient(JobStatusClient):
    """Fetch ``GET {base_url}/jobs/{job_id}`` from the processing backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.jobs_api_url).rstrip("/")
        token = token or settings.jobs_api_token
        self.headers: Dict[str, str] = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def get_job(self, job_id: str) -> ProcessingJob:
        try:
            response = await self.client.get(f"{self.base_url}/jobs/{job_id}", headers=self.headers)
        except httpx.TransportError as exc:
            raise TransientAPIError(f"Network error while fetching job {job_id}: {exc}") from exc

        status = response.status_code
        if status == 404:
            raise JobNotFoundError()
        if status in (401, 403):
            raise AuthError("Not authorised to read processing jobs. Please sign in again.")
        if status == 429 or status >= 500:
            raise TransientAPIError(
                f"Job status service unavailable (HTTP {status})", status_code=status
            )
        if status >= 400:
            raise JobError(f"Failed to get job status: HTTP {status}")

        try:
            payload = response.json()
            if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
                payload = payload["data"]
            payload.setdefault("jobId", job_id)
            return ProcessingJob.model_validate(payload)
        except (ValueError, AttributeError, ValidationError) as exc:
            raise TransientAPIError(f"Malformed job status response for {job_id}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


__all__ = ["HttpJobStatusClient", "JobStatusClient"]

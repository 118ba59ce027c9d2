"""Poll a processing job until it finishes."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from ...core.cancellation import CancellationToken
from ...data.models import JobStatus, ProcessingJob
from ...errors import JobFailedError, JobTimeoutError, TransientAPIError
from ...logging import get_logger
from .client import JobStatusClient

LOGGER = get_logger(__name__)

JobProgressCallback = Callable[[float, JobStatus], None]


class JobStatusPoller:
    """Query a job every ``interval`` seconds, at most ``max_attempts`` times.

    A transient error on one fetch uses up that attempt and polling carries
    on; more than ``max_consecutive_errors`` of them in a row re-raise the
    last one.
    """

    def __init__(
        self,
        client: JobStatusClient,
        interval: float = 5.0,
        max_attempts: int = 60,
        max_consecutive_errors: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.interval = interval
        self.max_attempts = max_attempts
        self.max_consecutive_errors = max_consecutive_errors
        self._sleep = sleep

    async def poll(
        self,
        job_id: str,
        *,
        on_progress: Optional[JobProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        consecutive_errors = 0
        for attempt in range(1, self.max_attempts + 1):
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            try:
                fetch = self.client.get_job(job_id)
                job = await (cancellation.run(fetch) if cancellation is not None else fetch)
            except TransientAPIError as exc:
                consecutive_errors += 1
                LOGGER.warning(
                    "Polling job %s failed on attempt %d/%d: %s",
                    job_id,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if consecutive_errors > self.max_consecutive_errors:
                    raise
            else:
                consecutive_errors = 0
                self._report(on_progress, job)
                if job.status is JobStatus.COMPLETED:
                    LOGGER.info("Job %s completed after %d poll(s)", job_id, attempt)
                    return job.result or {}
                if job.status is JobStatus.FAILED:
                    raise JobFailedError(job.error or "Processing failed")

            if attempt < self.max_attempts:
                if cancellation is not None:
                    await cancellation.sleep(self.interval)
                else:
                    await self._sleep(self.interval)

        raise JobTimeoutError(
            f"Job {job_id} did not finish after {self.max_attempts} status checks."
        )

    def _report(self, on_progress: Optional[JobProgressCallback], job: ProcessingJob) -> None:
        if on_progress is None:
            return
        try:
            on_progress(job.progress, job.status)
        except Exception:  # pragma: no cover - callbacks should not break polling
            LOGGER.exception("Job progress callback raised an exception")


__all__ = ["JobStatusPoller"]

"""Processing job status polling."""

from .client import HttpJobStatusClient, JobStatusClient
from .poller import JobStatusPoller

__all__ = ["HttpJobStatusClient", "JobStatusClient", "JobStatusPoller"]

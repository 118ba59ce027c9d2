"""Cooperative cancellation for long-running transcription work."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, Optional, TypeVar

from ..errors import CancelledError

T = TypeVar("T")


class CancellationToken:
    """Caller-owned signal that stops in-flight and pending work.

    ``run`` races an awaitable against the token: when the token fires first
    the awaitable's task is cancelled, which aborts the underlying HTTP
    request, and :class:`~audiotricks.errors.CancelledError` is raised.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError(self._reason)

    async def run(self, awaitable: Awaitable[T]) -> T:
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        if task.cancelled() or self._event.is_set() and not _succeeded(task):
            raise CancelledError(self._reason)
        return task.result()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds unless the token fires first."""

        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise CancelledError(self._reason)


def _succeeded(task: "asyncio.Future[object]") -> bool:
    return task.done() and not task.cancelled() and task.exception() is None


__all__ = ["CancellationToken"]

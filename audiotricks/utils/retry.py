"""Retry with backoff for coroutine operations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from ..logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to attempt an operation and how long to wait in between.

    ``max_attempts`` counts the first call, so ``max_attempts=1`` disables
    retrying. The delay before attempt ``n + 1`` is
    ``delay * backoff ** (n - 1)`` capped at ``max_delay``.
    """

    max_attempts: int = 3
    delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    def delay_for(self, attempt: int) -> float:
        return min(self.delay * (self.backoff ** (attempt - 1)), self.max_delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Sleep = asyncio.sleep,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
) -> T:
    """Await ``operation()`` until it succeeds or the policy is exhausted.

    Only exceptions matching ``retry_on`` are retried; anything else, and the
    last matching exception, propagates unchanged. An exception that carries
    a numeric ``retry_after`` attribute stretches the wait to at least that
    many seconds.
    """

    attempt = 1
    while True:
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= policy.max_attempts:
                raise
            wait = policy.delay_for(attempt)
            retry_after = getattr(exc, "retry_after", None)
            if isinstance(retry_after, (int, float)) and retry_after > wait:
                wait = min(float(retry_after), policy.max_delay)
            if on_retry is not None:
                on_retry(attempt, exc, wait)
            else:
                LOGGER.info(
                    "Attempt %d/%d failed (%s); retrying in %.1fs",
                    attempt,
                    policy.max_attempts,
                    exc,
                    wait,
                )
            await sleep(wait)
            attempt += 1


__all__ = ["RetryPolicy", "retry_async"]

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable

from .errors import GitServiceError


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, GitServiceError):
        return exc.code in {"rate_limited", "timeout", "unavailable"}
    return False


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: float = 0.0) -> float:
    """Delay before retry number ``attempt`` (1-based)."""
    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
    if jitter:
        delta = delay * jitter
        delay = max(0.0, delay + random.uniform(-delta, delta))
    return delay


async def retry_async(
    op: Callable[[], Awaitable[Any]],
    *,
    attempts: int = 3,
    base_delay: float = 0.2,
    max_delay: float = 5.0,
    jitter: float = 0.2,
) -> Any:
    """Exponential backoff with jitter for retryable errors.

    - attempts includes the first try
    - jitter is a fraction of delay (+/-)
    """
    attempt = 0
    while True:
        try:
            return await op()
        except GitServiceError as exc:
            attempt += 1
            if attempt >= attempts or not _is_retryable(exc):
                raise

            delay = backoff_delay(attempt, base_delay, max_delay, jitter)

            # Honor server-provided retry-after if available
            if exc.retry_after_seconds:
                delay = max(delay, float(exc.retry_after_seconds))

            await asyncio.sleep(delay)

"""Retry-with-exponential-backoff policy for upstream calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    retries: int = 2,
    base_delay: float = 0.5,
    sleep: Optional[SleepFn] = None,
) -> T:
    """
    Await ``fn()`` up to ``retries + 1`` times.

    The delay before retry ``n`` (0-based) is ``base_delay * 2 ** n``.
    Only the last exception is raised.
    """
    if retries < 0:
        raise ValueError("retries must be >= 0")
    sleep = sleep or asyncio.sleep
    last_exc: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            return await fn()
        except Exception as exc:
            last_exc = exc
            if attempt < retries:
                delay = base_delay * (2 ** attempt)
                logger.debug(f"Attempt {attempt + 1} failed ({exc}); retrying in {delay:.2f}s")
                await sleep(delay)
    raise last_exc  # type: ignore[misc]

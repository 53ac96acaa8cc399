"""Bounded retry and polling helpers with linear backoff.

The delay before retry ``n`` (1-based) is ``n * base_secs``. Sleeping goes
through an injectable ``sleep`` coroutine so callers and tests can control
wall-clock time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(attempt: int, base_secs: float) -> float:
    """Delay to wait after failed attempt ``attempt`` (1-based)."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return attempt * base_secs


def retry_window(max_attempts: int, base_secs: float) -> float:
    """Total backoff slept across ``max_attempts`` attempts that all fail."""
    return sum(backoff_delay(n, base_secs) for n in range(1, max_attempts))


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    *,
    max_attempts: int,
    base_secs: float,
    retry_on: tuple[type[BaseException], ...],
    sleep: Sleep = asyncio.sleep,
    on_retry: Callable[[int, BaseException, float], None] | None = None,
) -> T:
    """Call ``operation(attempt)`` until it returns or the budget runs out.

    Only exceptions in ``retry_on`` are retried; the last one is re-raised
    once ``max_attempts`` is reached. Anything else propagates immediately.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation(attempt)
        except retry_on as exc:
            if attempt >= max_attempts:
                raise
            delay = backoff_delay(attempt, base_secs)
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            await sleep(delay)
    raise AssertionError("unreachable")


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    done: Callable[[T], bool],
    *,
    max_attempts: int,
    base_secs: float,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Re-run ``fetch`` until ``done(result)`` or attempts are exhausted.

    Returns the last fetched value either way; the caller decides whether
    an unsatisfied result is an error.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    result = await fetch()
    attempt = 1
    while not done(result) and attempt < max_attempts:
        delay = backoff_delay(attempt, base_secs)
        logger.debug("Poll %d/%d unsatisfied, waiting %.1fs.", attempt, max_attempts, delay)
        await sleep(delay)
        attempt += 1
        result = await fetch()
    return result

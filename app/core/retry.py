# app/core/retry.py
"""
Capped exponential backoff for backend writes.

Only transient failures (transport errors, timeouts, connection-level
PostgREST errors) are retried; validation/permission errors surface on
the first attempt.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from postgrest.exceptions import APIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgREST could not reach the database
TRANSIENT_POSTGREST_CODES = {"PGRST000", "PGRST001", "PGRST002"}


def is_transient_error(error: Exception) -> bool:
    """
    Decide whether a failed backend call is worth retrying.

    Args:
        error: Exception raised by the SDK call.

    Returns:
        True for network-level failures, False otherwise.
    """
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(error, APIError):
        if error.code in TRANSIENT_POSTGREST_CODES:
            return True
        return "connection" in (error.message or "").lower()
    return False


def calculate_backoff_delay(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Delay before the next attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Upper bound in seconds
        exponential_base: Base for exponential calculation
        jitter: Multiply by a random factor in [0.5, 1.5)

    Returns:
        Delay in seconds, never above max_delay.
    """
    delay = min(base_delay * (exponential_base**attempt), max_delay)
    if jitter:
        delay = min(delay * (0.5 + random.random()), max_delay)
    return delay


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    jitter: bool = True,
    is_retryable: Callable[[Exception], bool] = is_transient_error,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Await `func()` up to `max_attempts` times.

    Non-retryable errors are re-raised immediately; the last error is
    re-raised once attempts are exhausted.
    """
    name = getattr(func, "__name__", "call")
    for attempt in range(max_attempts):
        try:
            return await func()
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt >= max_attempts - 1:
                logger.error(
                    f"{name} failed - all {max_attempts} attempts exhausted: {str(e)[:100]}"
                )
                raise
            delay = calculate_backoff_delay(attempt, base_delay, max_delay, jitter=jitter)
            logger.warning(
                f"{name} failed (attempt {attempt + 1}/{max_attempts}), "
                f"retrying in {delay:.2f}s: {str(e)[:100]}"
            )
            await sleep(delay)

    raise RuntimeError("max_attempts must be at least 1")

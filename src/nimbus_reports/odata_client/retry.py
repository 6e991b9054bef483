"""Bounded retry with exponential backoff for single requests."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

Sleep = Callable[[float], Awaitable[None]]
RetryPredicate = Callable[[Exception], bool]


def backoff_delay(attempt: int) -> float:
    """Delay after the given failed attempt (1-based): 1s, 2s, 4s, ..."""
    return float(2 ** (attempt - 1))


async def call_with_retry(
    request: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    sleep: Sleep = asyncio.sleep,
    retry_on: RetryPredicate | None = None,
    description: str = "Request",
) -> T:
    """
    Run one logical request, retrying failures with exponential backoff.

    Every exception is treated as retryable unless *retry_on* is given and
    returns False for it. There is no jitter.

    Args:
        request: Zero-argument coroutine factory performing one attempt
        max_attempts: Total attempts, including the first
        sleep: Awaitable sleep used between attempts
        retry_on: Optional classifier; False means raise immediately
        description: Label used in log messages

    Returns:
        The first successful result

    Raises:
        The last observed exception once attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await request()
        except Exception as e:
            if retry_on is not None and not retry_on(e):
                raise
            if attempt >= max_attempts:
                logger.error(f"{description} failed after {max_attempts} attempts: {e}")
                raise

            delay = backoff_delay(attempt)
            logger.warning(
                f"[Retry {attempt}/{max_attempts}] {description} failed: {e}; "
                f"retrying in {delay:.0f}s"
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without a result")

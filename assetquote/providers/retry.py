"""
Bounded retry for provider calls.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..data.models import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int,
    is_retryable: Callable[[Exception], bool],
    delay: float = 0.0,
    on_retry: Optional[Callable[[int, Exception], Awaitable[None]]] = None,
) -> T:
    """
    Run an async operation until it succeeds or attempts run out.

    Args:
        operation: Called with the 1-based attempt number
        max_attempts: Attempt ceiling
        is_retryable: Errors for which this returns False propagate immediately
        delay: Seconds to sleep between attempts
        on_retry: Awaited with (attempt, error) before the next attempt

    Returns:
        The operation's result

    Raises:
        RetryExhaustedError: Every attempt failed with a retryable error
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation(attempt)
        except Exception as e:
            if not is_retryable(e):
                raise
            last_error = e
            logger.debug(f"Attempt {attempt}/{max_attempts} failed: {e}")

            if attempt == max_attempts:
                break
            if on_retry is not None:
                await on_retry(attempt, e)
            if delay > 0:
                await asyncio.sleep(delay)

    raise RetryExhaustedError(max_attempts, last_error)

"""
Explicit, bounded retry for callers that want one.

The dispatcher never retries on its own; wrap a call in call_with_retry()
when an operation is known to be safe to repeat.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from .errors import InvalidArgumentError, OchamiError, RequestTimeoutError, ServerError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: Tuple[Type[OchamiError], ...] = (TransportError, RequestTimeoutError, ServerError)


def exponential_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """Calculate exponential backoff with jitter"""
    delay = min(base_delay * (2 ** attempt), max_delay)
    jitter = random.uniform(0, 0.3 * delay)
    return delay + jitter


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    retry_on: Tuple[Type[OchamiError], ...] = RETRYABLE_ERRORS,
) -> T:
    """
    Await func() until it succeeds or max_attempts is reached.

    Args:
        func: Zero-argument coroutine factory, e.g. lambda: backend.get_group("compute")
        max_attempts: Total attempts including the first one
        base_delay: Backoff base in seconds
        max_delay: Backoff cap in seconds
        retry_on: Error classes worth retrying

    Returns:
        Result of the first successful attempt

    Raises:
        The last error once attempts are exhausted, or immediately for
        errors not listed in retry_on
    """
    if max_attempts < 1:
        raise InvalidArgumentError(f"max_attempts must be at least 1, got {max_attempts}")

    for attempt in range(max_attempts):
        try:
            return await func()
        except retry_on as e:
            if attempt == max_attempts - 1:
                raise
            backoff = exponential_backoff(attempt, base_delay, max_delay)
            logger.warning(f"{e} (attempt {attempt + 1}/{max_attempts}); backing off {backoff:.1f}s")
            await asyncio.sleep(backoff)

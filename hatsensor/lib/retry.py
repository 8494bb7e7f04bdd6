"""Retry utilities for flaky hardware and network operations."""
import asyncio
import time
from collections.abc import Callable
from logging import Logger
from typing import TypeVar

T = TypeVar("T")


async def retry_async(
    fn: Callable[[], T],
    *,
    name: str,
    logger: Logger,
    max_attempts: int = 3,
    initial_backoff_sec: float = 2.0,
    retryable_exceptions: tuple[type[Exception], ...] = (OSError,),
) -> T:
    """Run a blocking function in a worker thread, retrying with backoff.

    The backoff doubles after every failed attempt. Exceptions outside
    ``retryable_exceptions`` propagate on the first occurrence.

    Args:
        fn: The blocking function to execute.
        name: Name for logging purposes.
        logger: Logger instance to use.
        max_attempts: Maximum number of attempts.
        initial_backoff_sec: Delay after the first failure, in seconds.
        retryable_exceptions: Exception types that trigger a retry.

    Returns:
        The first successful result.

    Raises:
        The last retryable exception once ``max_attempts`` calls failed.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await asyncio.to_thread(fn)
        except retryable_exceptions as e:
            if attempt == max_attempts:
                logger.error(
                    "%s failed after %d attempts. Last error: %s",
                    name,
                    max_attempts,
                    e,
                )
                raise
            backoff = initial_backoff_sec * (2 ** (attempt - 1))
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
                name,
                attempt,
                max_attempts,
                e,
                backoff,
            )
            await asyncio.sleep(backoff)

    raise AssertionError("unreachable")


def retry_blocking(
    fn: Callable[[], T],
    *,
    name: str,
    logger: Logger,
    max_attempts: int,
    delay_sec: float,
    retryable_exceptions: tuple[type[Exception], ...],
) -> T:
    """Call a blocking function until it succeeds or attempts run out.

    The delay between attempts is constant and spent in ``time.sleep``, so
    run this from a worker thread when called from async code.

    Returns:
        The first successful result.

    Raises:
        The last retryable exception once ``max_attempts`` calls failed.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except retryable_exceptions as e:
            if attempt == max_attempts:
                raise
            logger.debug(
                "%s attempt %d/%d failed: %s", name, attempt, max_attempts, e
            )
            if delay_sec > 0:
                time.sleep(delay_sec)

    raise AssertionError("unreachable")

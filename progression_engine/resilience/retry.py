"""Bounded retries for identity-store writes

Only transient failures (timeouts, dropped connections) are retried. Waits grow
exponentially with a little jitter, and a call gives up after MAX_RETRIES.
"""

import asyncio
import random
import logging
from typing import Callable, Any, TypeVar

from progression_engine.config import PERSIST_MAX_RETRIES, RETRY_BASE_DELAY, RETRY_MAX_DELAY
from progression_engine.exceptions import PersistenceError, PersistenceTimeoutError
from progression_engine.observability.metrics import record_persistence_retry

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_RETRIES = PERSIST_MAX_RETRIES
BASE_DELAY = RETRY_BASE_DELAY  # seconds
MAX_DELAY = RETRY_MAX_DELAY  # seconds
JITTER = 0.1  # 10% random jitter


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if error is transient and should be retried.

    Retryable errors:
    - Identity store timeouts
    - Persistence failures caused by connection/OS level errors

    Non-retryable errors:
    - Validation and precondition errors
    - Corrupt records and rejected writes

    Args:
        exc: The exception to check

    Returns:
        True if error should be retried, False otherwise
    """
    if isinstance(exc, PersistenceTimeoutError):
        return True

    if isinstance(exc, (asyncio.TimeoutError, ConnectionError)):
        return True

    if isinstance(exc, PersistenceError):
        return isinstance(exc.cause, (ConnectionError, TimeoutError, OSError))

    # Default: don't retry unknown errors
    return False


def calculate_backoff(attempt: int) -> float:
    """
    Seconds to wait before retry number ``attempt`` (0-based).

    Doubles from BASE_DELAY up to MAX_DELAY, then moves the result by a random
    fraction (at most JITTER) in either direction.
    """
    ceiling = min(BASE_DELAY * 2 ** attempt, MAX_DELAY)
    spread = ceiling * JITTER
    return max(0.0, ceiling + random.uniform(-spread, spread))


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any
) -> T:
    """
    Retry async function with exponential backoff.

    Only retries transient errors. Gives up after max_retries attempts.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts
        *args, **kwargs: Arguments to pass to func

    Returns:
        Result from func

    Raises:
        Last exception if all retries exhausted or non-retryable error

    Example:
        ok = await retry_with_backoff(store.update_user, record, max_retries=2)
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            name = getattr(func, "__name__", repr(func))

            if attempt == max_retries:
                if max_retries:
                    logger.error(f"[RETRY] All {max_retries} retries exhausted for {name}")
                raise

            if not is_retryable_error(e):
                logger.warning(
                    f"[RETRY] Non-retryable error for {name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            backoff = calculate_backoff(attempt)
            record_persistence_retry(name)

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {name} "
                f"after {backoff:.2f}s (error: {type(e).__name__})"
            )

            await asyncio.sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")


"""
Retry with exponential backoff for transient backend errors.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_ERRORS: Tuple[str, ...] = (
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
    "ConnectionError",
    "TimeoutError",
    "BusyLoadingError",
    "OperationalError",
)


@dataclass(frozen=True)
class RetryOptions:
    """
    Retry policy.

    Attributes:
        max_attempts: Total attempts including the first call
        base_delay: Delay in seconds before the second attempt
        max_delay: Upper bound for any single delay, in seconds
        retryable_errors: Error names (or fragments of them) worth retrying
    """

    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 5.0
    retryable_errors: Tuple[str, ...] = field(default=DEFAULT_RETRYABLE_ERRORS)


def error_name(error: BaseException) -> str:
    """The identifying name of an error: its ``code`` attribute if set, else its class name."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code
    return type(error).__name__


def is_retryable(error: BaseException, retryable_errors: Tuple[str, ...]) -> bool:
    names = {error_name(error), type(error).__name__}
    return any(retryable in name for name in names for retryable in retryable_errors)


def calculate_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential delay for the given attempt (1-based) plus up to 30% jitter, capped."""
    exponential = base_delay * (2 ** (attempt - 1))
    jitter = random.random() * 0.3 * exponential
    return min(exponential + jitter, max_delay)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    options: RetryOptions = RetryOptions(),
) -> T:
    """
    Await ``fn()`` and retry it on transient errors.

    Non-retryable errors are raised immediately; the last error is raised
    unchanged once attempts are exhausted.

    Args:
        fn: Zero-argument callable returning an awaitable
        options: Retry policy

    Returns:
        The result of the first successful call
    """
    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as e:
            if attempt >= options.max_attempts or not is_retryable(e, options.retryable_errors):
                raise

            delay = calculate_delay(attempt, options.base_delay, options.max_delay)
            logger.warning(
                f"Retryable error {error_name(e)} on attempt {attempt}/{options.max_attempts}, "
                f"retrying in {delay:.3f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1


async def call_with_retry(
    fn: Callable[..., T],
    *args: Any,
    options: RetryOptions = RetryOptions(),
    **kwargs: Any,
) -> T:
    """Run a blocking backend call in a worker thread under the retry policy."""
    return await with_retry(lambda: asyncio.to_thread(fn, *args, **kwargs), options)

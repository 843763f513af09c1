"""Exponential backoff retry logic for user store calls.

A stamp lookup that hits a transient database failure is retried a bounded
number of times before the failure is surfaced to the caller.
"""

import asyncio
import inspect
from functools import wraps
from typing import Any, Awaitable, Callable, Type, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryableError(Exception):
    """Base exception for errors that can be retried."""

    pass


def retry_with_backoff(
    max_retries: int = 2,
    base_delay: float = 0.05,
    max_delay: float = 1.0,
    exponential_base: float = 2.0,
    retryable_exceptions: tuple[Type[Exception], ...] = (RetryableError,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator for retry with exponential backoff.

    Args:
        max_retries: Retries after the first attempt (default: 2).
        base_delay: Base delay in seconds.
        max_delay: Upper bound for a single delay in seconds.
        exponential_base: Base for exponential backoff.
        retryable_exceptions: Exceptions that trigger a retry.

    Returns:
        Decorated coroutine function with retry logic.

    Example:
        >>> @retry_with_backoff(max_retries=2, retryable_exceptions=(StoreUnavailable,))
        ... async def load_stamp(user_id):
        ...     return await store.get_security_stamp(user_id)

        >>> # First attempt fails  -> wait base_delay
        >>> # Second attempt fails -> wait 2 * base_delay
        >>> # Third attempt fails  -> raise the last exception
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError("retry_with_backoff supports coroutine functions only")

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries + 1):
                try:
                    result = await func(*args, **kwargs)
                    if attempt > 0:
                        logger.info(
                            "retry.success",
                            function=func.__name__,
                            attempt=attempt + 1,
                        )
                    return result

                except retryable_exceptions as e:
                    if attempt >= max_retries:
                        logger.error(
                            "retry.exhausted",
                            function=func.__name__,
                            total_attempts=max_retries + 1,
                            error=str(e),
                        )
                        raise

                    delay = min(base_delay * (exponential_base**attempt), max_delay)
                    logger.warning(
                        "retry.attempt",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay_seconds=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("Retry logic error: no attempt made")

        return async_wrapper

    return decorator

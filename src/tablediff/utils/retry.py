"""
Retry decorator with exponential backoff for database reads

Used by database-backed data sources only. The engine itself never
retries: whatever a source still raises after its own retries is fatal
for the run.

Usage:
    from tablediff.utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3, base_delay=1.0)
    def fetch_chunk(cursor, query, params):
        cursor.execute(query, params)
        return cursor.fetchall()
"""

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

logger = logging.getLogger(__name__)

# Substrings of transient database errors worth another attempt
_RETRYABLE_PATTERNS = (
    "connection",
    "timeout",
    "deadlock",
    "lock wait timeout",
    "lost connection",
    "server has gone away",
    "connection refused",
    "connection reset",
    "broken pipe",
    "network error",
    "communication link failure",
    "connection closed",
    "connection terminated",
)

_RETRYABLE_TYPES = ("connectionerror", "timeouterror", "operationalerror", "interfaceerror")


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is transient

    Args:
        exception: The exception to check

    Returns:
        True for connection, timeout and deadlock style errors
    """
    message = str(exception).lower()
    type_name = type(exception).__name__.lower()

    if type_name in _RETRYABLE_TYPES:
        return True

    return any(p in message or p in type_name for p in _RETRYABLE_PATTERNS)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    should_retry: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    Decorator that retries a function with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Add +/-25% random jitter to each delay (default: True)
        should_retry: Predicate deciding whether an exception is retried
            (default: retry everything)
        on_retry: Callback function(attempt, exception, delay) called on each retry

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            func_name = getattr(func, "__name__", "function")

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except Exception as e:
                    if should_retry is not None and not should_retry(e):
                        logger.error(f"Non-retryable error in {func_name}: {type(e).__name__}: {e}")
                        raise

                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = min(base_delay * (exponential_base ** attempt), max_delay)
                    if jitter:
                        delay = max(0.1, delay + random.uniform(-delay * 0.25, delay * 0.25))

                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries} failed for {func_name}: "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                    )

                    if on_retry:
                        on_retry(attempt + 1, e, delay)

                    time.sleep(delay)

            raise RuntimeError(f"Unexpected exit from retry loop in {func_name}")

        return wrapper
    return decorator


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    Retry only transient database errors

    Syntax errors, constraint violations and the like fail immediately.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        on_retry: Callback function(attempt, exception, delay) called on each retry
    """
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        should_retry=is_retryable_db_exception,
        on_retry=on_retry,
    )

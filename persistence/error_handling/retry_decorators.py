"""Retry Logic for Transient Database Connection Errors

Decorator factory that retries async store operations when the failure looks
like a dropped SSL/TCP connection. Between attempts the active store's pool is
closed (the store recreates it lazily) and the call waits with exponential
backoff: min(2**attempt, 30) seconds.

Usage:
    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_roadmap(self, roadmap_id):
        ...

Errors that are not connection errors are re-raised immediately. When all
retries are exhausted the last error is re-raised.
"""

from __future__ import annotations

import asyncio
import functools
import traceback
from typing import Awaitable, Callable

from api.utils.debug import print__persistence_debug
from persistence.config import DEFAULT_MAX_RETRIES, RETRY_MAX_DELAY, T
from persistence.database.pool_manager import force_close_pools

SSL_ERROR_PATTERNS = [
    "ssl connection has been closed unexpectedly",
    "consuming input failed",
    "server closed the connection unexpectedly",
    "connection closed",
    "the connection is closed",
    "ssl syscall error",
    "connection reset",
    "broken pipe",
    "could not receive data from server",
]


def is_ssl_connection_error(error: Exception) -> bool:
    """Return True when the error message or type points to a lost connection."""
    error_str = str(error).lower()
    error_type = type(error).__name__.lower()
    return (
        any(pattern in error_str for pattern in SSL_ERROR_PATTERNS)
        or "ssl" in error_type
        or error_type == "operationalerror"
    )


def retry_on_ssl_connection_error(max_retries: int = DEFAULT_MAX_RETRIES):
    """Retry the decorated coroutine on connection errors with exponential backoff.

    Args:
        max_retries (int): retries after the first attempt (max_retries + 1 calls total)
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            last_error = None

            for attempt in range(max_retries + 1):
                try:
                    result = await func(*args, **kwargs)
                    if attempt > 0:
                        print__persistence_debug(
                            f"SSL_RETRY SUCCESS: {func.__name__} succeeded on attempt {attempt + 1}"
                        )
                    return result

                except Exception as exc:
                    last_error = exc

                    if not is_ssl_connection_error(exc):
                        raise

                    print__persistence_debug(
                        f"SSL_RETRY ERROR: {func.__name__} failed on attempt {attempt + 1}: {exc}"
                    )
                    print__persistence_debug(
                        f"SSL_RETRY TRACEBACK: {traceback.format_exc()}"
                    )

                    if attempt >= max_retries:
                        break

                    delay = min(2**attempt, RETRY_MAX_DELAY)
                    print__persistence_debug(
                        f"SSL_RETRY CLEANUP: Recreating pool after {delay}s delay (attempt {attempt + 2})"
                    )
                    try:
                        await force_close_pools()
                    except Exception as cleanup_error:
                        print__persistence_debug(
                            f"SSL_CLEANUP ERROR: Error during SSL cleanup: {cleanup_error}"
                        )
                    await asyncio.sleep(delay)

            print__persistence_debug(
                f"SSL_RETRY EXHAUSTED: {func.__name__} failed after {max_retries + 1} attempts"
            )
            raise last_error

        return wrapper

    return decorator

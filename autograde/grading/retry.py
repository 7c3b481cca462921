"""Retry with exponential backoff around AI provider calls."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..errors import GradingError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Client-side failures; repeating the request cannot help
NON_RETRYABLE_STATUSES = (400, 401)


def is_retryable(error: BaseException) -> bool:
    if getattr(error, "retryable", True) is False:
        return False
    if isinstance(error, GradingError):
        # status_code on these is the API response code, not the provider's
        status = getattr(error, "http_status", None)
    else:
        status = getattr(error, "status_code", None)
    return status not in NON_RETRYABLE_STATUSES


async def with_retry(fn: Callable[[], Awaitable[T]], max_attempts: int = 3) -> T:
    """Await ``fn()`` up to ``max_attempts`` times.

    Waits ``2 ** attempt`` seconds after failed attempt ``attempt`` (2s, then
    4s, ...). Errors that are not retryable are raised at once; otherwise the
    last error is raised when attempts run out.
    """
    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as e:
            if not is_retryable(e) or attempt >= max_attempts:
                raise
            delay = 2 ** attempt
            logger.debug(f"AI call failed ({type(e).__name__}: {e}); retry {attempt}/{max_attempts - 1} in {delay}s")
            await asyncio.sleep(delay)
            attempt += 1

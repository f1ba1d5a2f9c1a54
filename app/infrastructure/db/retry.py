"""
Retry helpers for transient database failures.

Deadlocks, lock wait timeouts, dropped connections and lost optimistic
writes are retried with exponential backoff; anything else is raised
immediately.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from app.domain.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# MySQL deadlock / lock wait timeout, PostgreSQL deadlock / serialization failure,
# SQLite busy database.
TRANSIENT_MARKERS = ("1213", "1205", "40P01", "40001", "database is locked")


def is_transient_error(error: Exception) -> bool:
    if isinstance(error, ConcurrentModificationError):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    if isinstance(error, (OperationalError, DBAPIError)):
        error_str = str(error)
        return any(marker in error_str for marker in TRANSIENT_MARKERS)
    return False


async def retry_on_transient(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
) -> T:
    """
    Run ``func`` and retry it on transient database errors.

    The delay doubles on every attempt: base_delay * (2 ** attempt). After
    the last attempt the original exception propagates.
    """
    for attempt in range(max_attempts):
        try:
            return await func()
        except Exception as e:
            if not is_transient_error(e) or attempt == max_attempts - 1:
                if is_transient_error(e):
                    logger.error(
                        "Transient database error persists after max retries",
                        extra={"attempts": max_attempts, "error": str(e)},
                    )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Transient database error, retrying",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "retry_delay": delay,
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Unexpected state in retry_on_transient")

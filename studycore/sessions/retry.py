"""Retry helpers for callers of the session manager.

Storage failures are retried with exponential backoff up to a small bound.
A lost write race is retried exactly once against fresh state; if it happens
again the error is surfaced to the caller.
"""

from __future__ import annotations

import functools
import time

from studycore.logging_config import get_logger
from studycore.srs.exceptions import ConcurrentModificationError, StoreUnavailableError

logger = get_logger("studycore.retry")


def retry_store(func=None, *, retries: int = 3, initial_delay: float = 0.1):
    """Retry a call while it raises StoreUnavailableError.

    Args:
        retries: Maximum number of attempts before the error is re-raised.
        initial_delay: The delay (in seconds) before the first retry. The
            delay is doubled after every attempt.

    Raises:
        ValueError: If retries is less than 1
    """
    if retries < 1:
        raise ValueError(f"retries must be at least 1, got {retries}")

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            delay = initial_delay
            for attempt in range(retries):
                try:
                    return fn(*args, **kwargs)
                except StoreUnavailableError as exc:
                    if attempt == retries - 1:
                        raise
                    logger.warning(
                        "Store unavailable, retrying",
                        function=fn.__name__,
                        attempt=attempt + 1,
                        delay_seconds=delay,
                        error=exc.message,
                    )
                    time.sleep(delay)
                    delay *= 2

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def retry_on_conflict(fn):
    """Run the call once more if it lost a concurrent write race."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ConcurrentModificationError as exc:
            logger.info(
                "Concurrent modification, retrying once",
                function=fn.__name__,
                owner_id=exc.owner_id,
                track_id=exc.track_id,
            )
            return fn(*args, **kwargs)

    return wrapper

"""
Per-(owner, track) locks for session writers in this process.

Writers for the same key run one at a time; different keys never contend.
Cross-process races are caught by the store's version checks instead.
A key's lock is dropped from the registry once no writer holds or awaits it.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional
import threading

from studycore import config
from studycore.srs.exceptions import ConcurrentModificationError

LockKey = tuple[str, str]

_registry_lock = threading.Lock()
_key_locks: dict[LockKey, threading.Lock] = {}
_key_users: dict[LockKey, int] = {}  # Holders plus waiters per key


def _checkout(key: LockKey) -> threading.Lock:
    with _registry_lock:
        lock = _key_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _key_locks[key] = lock
        _key_users[key] = _key_users.get(key, 0) + 1
        return lock


def _checkin(key: LockKey) -> None:
    with _registry_lock:
        _key_users[key] -= 1
        if _key_users[key] == 0:
            del _key_users[key]
            del _key_locks[key]


@contextmanager
def key_lock(owner_id: str, track_id: str, timeout: Optional[float] = None) -> Iterator[None]:
    """
    Hold the writer lock of an (owner, track) pair.

    Args:
        owner_id: Learner identifier
        track_id: Exam track identifier
        timeout: Seconds to wait (defaults to STORE_TIMEOUT_SECONDS)

    Raises:
        ConcurrentModificationError: If another writer holds the lock too long
    """
    if timeout is None:
        timeout = config.get_store_timeout()

    key = (owner_id, track_id)
    lock = _checkout(key)
    try:
        if not lock.acquire(timeout=timeout):
            raise ConcurrentModificationError(owner_id, track_id, "Timed out waiting for session lock")
        try:
            yield
        finally:
            lock.release()
    finally:
        _checkin(key)

"""
Distributed Spinlock

A lock on a logical key is an entry at encode_key(key + LOCK_SUFFIX) created
with the store's atomic add(). Whoever's add() succeeds holds the lock until
it deletes the entry or the entry expires after LOCK_TIMEOUT seconds.

Waiters poll with exponential backoff (10ms doubling up to 100ms) and never
give up. There is no fairness between waiters and no ownership token: any
caller that knows the key can unlock it.
"""

import atexit
import logging
import time
from contextlib import contextmanager
from typing import Callable, FrozenSet, Iterator, Optional, Set
from weakref import WeakSet

from ..backend.base import StoreBackend
from ..config.settings import settings

logger = logging.getLogger(__name__)

BACKOFF_START = 0.01
BACKOFF_MAX = 0.1

LOCK_VALUE = b"1"

# Instances that have taken a lock in this process
_lockers: "WeakSet[DistributedLock]" = WeakSet()
_hook_registered = False


def backoff_delay(attempt: int) -> float:
    """Seconds to sleep after the given number of failed attempts."""
    return min(2 ** attempt * BACKOFF_START, BACKOFF_MAX)


def release_all_lockers() -> None:
    """Exit hook: release the locks of every live instance."""
    for locker in list(_lockers):
        locker.release_all()


def _register_exit_hook(locker: "DistributedLock") -> None:
    global _hook_registered
    _lockers.add(locker)
    if not _hook_registered:
        atexit.register(release_all_lockers)
        _hook_registered = True


class DistributedLock:
    """
    Spinlocks shared by every process using the same pool.

    Locks still held when the interpreter exits are released by a single
    atexit hook per process, registered when the first lock is taken.

    check, if given, runs before every attempt and may raise to abort a
    waiting lock() (for instance once the server pool is gone).
    """

    def __init__(self, backend: StoreBackend, timeout: Optional[int] = None,
                 suffix: Optional[str] = None,
                 check: Optional[Callable[[], None]] = None):
        self.backend = backend
        self.timeout = timeout if timeout is not None else settings.LOCK_TIMEOUT
        self.suffix = suffix if suffix is not None else settings.LOCK_SUFFIX
        self.check = check
        self._held: Set[str] = set()

    def lock_key(self, key: str) -> str:
        """Physical key of the lock entry for a logical key."""
        return self.backend.encode_key(key + self.suffix)

    def try_lock(self, key: str) -> bool:
        """Single attempt at creating the lock entry."""
        return self.backend.add(self.lock_key(key), LOCK_VALUE, 0, self.timeout)

    def lock(self, key: str) -> None:
        """Block until the lock on ``key`` is acquired."""
        attempt = 0
        while True:
            if self.check is not None:
                self.check()
            if self.try_lock(key):
                break
            time.sleep(backoff_delay(attempt))
            attempt += 1
        if attempt:
            logger.debug(f"Acquired lock on {key} after {attempt} retries")

        _register_exit_hook(self)
        self._held.add(key)

    def unlock(self, key: str) -> None:
        """Release the lock on ``key``, whoever holds it."""
        self.backend.delete(self.lock_key(key))
        self._held.discard(key)

    def release_all(self) -> None:
        """Unlock every key this instance still holds."""
        for key in list(self._held):
            logger.debug(f"Releasing lock on {key}")
            self.unlock(key)

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        self.lock(key)
        try:
            yield
        finally:
            self.unlock(key)

    @property
    def held(self) -> FrozenSet[str]:
        return frozenset(self._held)

"""Named re-entrant locks.

Locks are keyed by ``(kind, key)`` and created on first use.  A thread
may re-acquire a lock it already holds, so a zone operation can call
helpers that lock the same zone again.  Waiting is blocking: callers
queue up behind the holder instead of failing fast.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class LockManager:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.RLock] = {}

    def _get(self, kind: str, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get((kind, key))
            if lock is None:
                lock = self._locks[(kind, key)] = threading.RLock()
            return lock

    @contextmanager
    def lock(self, kind: str, key: str) -> Iterator[None]:
        """Hold the named lock for the duration of the ``with`` block."""
        lock = self._get(kind, key)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()

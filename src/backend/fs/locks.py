"""
Keyed lock registry for album-scoped mutual exclusion.

Every mutation of an album directory (write into it, delete a file from it,
remove it) runs while holding the lock for (owner_id, album_id). Locks are
re-entrant and never discarded, so a waiter can never end up holding a lock
object that has been replaced.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.RLock] = {}

    def get(self, owner_id: str, album_id: str) -> threading.RLock:
        key = (owner_id, album_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, owner_id: str, album_id: str) -> Iterator[None]:
        with self.get(owner_id, album_id):
            yield

    @contextmanager
    def hold_many(self, owner_id: str, album_ids: Iterable[str]) -> Iterator[None]:
        """Hold several album locks of one owner; acquired in sorted order."""
        with ExitStack() as stack:
            for album_id in sorted(set(album_ids)):
                stack.enter_context(self.get(owner_id, album_id))
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

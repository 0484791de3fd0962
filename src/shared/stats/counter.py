"""
Process-wide advisory image counter.

The count is a convenience cache updated on save/delete/sweep. It is
mutation-safe (lock-protected) but NOT authoritative: files created or removed
outside this process, or by a crash mid-operation, are not reflected. Use
`AlbumStorageManager.count_images()` when the real number matters.
"""

from __future__ import annotations

import threading


class AdvisoryCounter:
    def __init__(self, initial: int = 0) -> None:
        self._value = int(initial)
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self, amount: int = 1) -> int:
        with self._lock:
            self._value += amount
            return self._value

    def decrement(self, amount: int = 1) -> int:
        # Never goes negative; drift is expected, negative counts are nonsense.
        with self._lock:
            self._value = max(0, self._value - amount)
            return self._value

    def reset(self, value: int = 0) -> None:
        with self._lock:
            self._value = max(0, int(value))

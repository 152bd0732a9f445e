from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class BrandLockRegistry:
    """One lock per brand id so writes to the same profile run one at a time in this process."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, brand_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(brand_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[brand_id] = lock
            return lock

    @contextmanager
    def hold(self, brand_id: str) -> Iterator[None]:
        lock = self._lock_for(brand_id)
        with lock:
            yield

    def forget(self, brand_id: str) -> None:
        with self._guard:
            lock = self._locks.get(brand_id)
            if lock is not None and not lock.locked():
                del self._locks[brand_id]

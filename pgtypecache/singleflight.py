"""Per-key lock table that keeps one round trip in flight per key."""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class SingleFlight:
    """Serializes work per key while letting different keys run in parallel.

    Lock entries are reference counted and dropped once the last waiter
    leaves, so the table only holds keys that are currently in flight.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock, waiters = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, waiters + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                _, waiters = self._locks[key]
                if waiters <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, waiters - 1)

    def in_flight(self) -> int:
        """Number of keys that currently have a holder or waiter."""

        with self._guard:
            return len(self._locks)


__all__ = ["SingleFlight"]

"""In-process counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from hourly_throttle.adapters.counter_store.base import AbstractCounterStore


@dataclass
class _CounterEntry:
    value: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter map guarded by a lock, with optional natural expiry.

    Expired entries read as absent and are purged lazily on the next write,
    so a long-running process does not keep every past window around.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will count
        independently.
    """

    name = "memory"

    def __init__(
        self,
        *,
        ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
        purge_every: int = 1024,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            ttl_seconds: Lifetime of a counter after its first increment.
                ``None`` keeps counters forever.
            clock: Time source function returning UNIX time in seconds.
            purge_every: Number of increments between expiry sweeps.

        Raises:
            ValueError: If ttl_seconds or purge_every are invalid.
        """
        if ttl_seconds is not None and ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        if purge_every < 1:
            raise ValueError("purge_every must be >= 1")

        self._ttl = ttl_seconds
        self._clock = clock
        self._purge_every = purge_every
        self._lock = threading.Lock()
        self._counters: dict[str, _CounterEntry] = {}
        self._writes = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def _is_expired(self, entry: _CounterEntry, now: float) -> bool:
        return entry.expires_at is not None and now >= entry.expires_at

    def _purge_expired_locked(self, now: float) -> None:
        expired = [k for k, entry in self._counters.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._counters[key]

    def increment(self, key: str) -> int:
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        with self._lock:
            self._writes += 1
            if self._writes % self._purge_every == 0:
                self._purge_expired_locked(now)

            entry = self._counters.get(key)
            if entry is None or self._is_expired(entry, now):
                expires_at = now + self._ttl if self._ttl is not None else None
                entry = _CounterEntry(value=0, expires_at=expires_at)
                self._counters[key] = entry

            entry.value += 1
            return entry.value

    def get(self, key: str) -> int:
        now = self._clock()
        with self._lock:
            entry = self._counters.get(key)
            if entry is None or self._is_expired(entry, now):
                return 0
            return entry.value

    def clear(self) -> None:
        """Drop every counter."""

        with self._lock:
            self._counters.clear()
            self._writes = 0

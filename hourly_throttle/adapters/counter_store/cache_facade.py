"""Counter store over a cache object supplied by the host application.

Works with any object exposing the common cache surface
``add(key, value, timeout)`` / ``incr(key)`` / ``get(key)`` (Django's cache
framework, pymemcache-style clients, ...). Atomicity comes from the host
cache's own ``incr``.
"""

from __future__ import annotations

from typing import Any

from hourly_throttle.adapters.counter_store.base import AbstractCounterStore
from hourly_throttle.core.errors import StoreUnavailable
from hourly_throttle.core.logging import hash_for_log


class CacheFacadeCounterStore(AbstractCounterStore):
    """Adapter turning a host cache into a counter store."""

    name = "cache_facade"

    def __init__(
        self,
        cache: Any,
        *,
        ttl_seconds: int | None = None,
        unavailable_errors: tuple[type[BaseException], ...] = (ConnectionError, TimeoutError),
    ) -> None:
        """Initialize the adapter.

        Args:
            cache: Host cache object with ``add``, ``incr`` and ``get``.
            ttl_seconds: Timeout passed to ``add`` when seeding a counter.
            unavailable_errors: Exception types raised by the host cache that
                mean the cache is unreachable.

        Raises:
            TypeError: If the cache lacks one of the required methods.
        """
        missing = [m for m in ("add", "incr", "get") if not callable(getattr(cache, m, None))]
        if missing:
            raise TypeError(f"cache object is missing required methods: {', '.join(missing)}")

        self._cache = cache
        self._ttl = ttl_seconds
        self._unavailable_errors = unavailable_errors

    def _unavailable(self, exc: BaseException, key: str) -> StoreUnavailable:
        return StoreUnavailable(
            code="counter_store_unavailable",
            message=f"Host cache unavailable: {type(exc).__name__}",
            details={"backend": self.name, "key_hash": hash_for_log(key)},
        )

    def _seed(self, key: str) -> None:
        # add() is a no-op when the key already exists
        if self._ttl is None:
            self._cache.add(key, 0)
        else:
            self._cache.add(key, 0, self._ttl)

    def increment(self, key: str) -> int:
        if not key:
            raise ValueError("key must be a non-empty string")

        try:
            self._seed(key)
            try:
                return int(self._cache.incr(key))
            except ValueError:
                # Entry expired between add() and incr(); seed once more.
                self._seed(key)
                return int(self._cache.incr(key))
        except self._unavailable_errors as exc:
            raise self._unavailable(exc, key) from exc

    def get(self, key: str) -> int:
        try:
            value = self._cache.get(key)
        except self._unavailable_errors as exc:
            raise self._unavailable(exc, key) from exc

        return int(value) if value is not None else 0

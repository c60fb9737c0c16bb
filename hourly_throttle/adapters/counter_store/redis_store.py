"""Redis-backed counter store.

Counting is delegated to the server-side ``INCR`` command, which is atomic
across every process and host that shares the Redis instance. The expiry is
sent in the same MULTI/EXEC block so a counter never outlives its TTL.
"""

from __future__ import annotations

import logging

import redis

from hourly_throttle.adapters.counter_store.base import AbstractCounterStore
from hourly_throttle.core.errors import StoreUnavailable
from hourly_throttle.core.logging import hash_for_log

logger = logging.getLogger(__name__)

# Faults that mean "the store is down", as opposed to misuse or corruption.
UNAVAILABLE_ERRORS: tuple[type[BaseException], ...] = (
    redis.exceptions.ConnectionError,
    redis.exceptions.TimeoutError,
)

# Subclasses of ConnectionError that signal bad credentials or ACLs. These
# propagate so a misconfigured store is not mistaken for an outage.
MISCONFIGURED_ERRORS: tuple[type[BaseException], ...] = (
    redis.exceptions.AuthenticationError,
    redis.exceptions.AuthorizationError,
)


class RedisCounterStore(AbstractCounterStore):
    """Counter store over a shared Redis server."""

    name = "redis"

    def __init__(
        self,
        client: redis.Redis,
        *,
        ttl_seconds: int | None = None,
        key_prefix: str = "",
    ) -> None:
        """Initialize the store.

        Args:
            client: Configured synchronous Redis client. Its socket timeout
                bounds every call made by this store.
            ttl_seconds: Expiry applied to each counter; ``None`` disables it.
            key_prefix: Namespace prepended to every key.
        """
        if ttl_seconds is not None and ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        self._client = client
        self._ttl = ttl_seconds
        self._prefix = key_prefix

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: float = 0.5,
        ttl_seconds: int | None = None,
        key_prefix: str = "",
    ) -> "RedisCounterStore":
        """Build a store with its own connection pool."""

        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, ttl_seconds=ttl_seconds, key_prefix=key_prefix)

    def _unavailable(self, exc: BaseException, key: str) -> StoreUnavailable:
        return StoreUnavailable(
            code="counter_store_unavailable",
            message=f"Redis counter store unavailable: {type(exc).__name__}",
            details={"backend": self.name, "key_hash": hash_for_log(key)},
        )

    def increment(self, key: str) -> int:
        if not key:
            raise ValueError("key must be a non-empty string")

        full_key = self._prefix + key
        try:
            with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(full_key)
                if self._ttl is not None:
                    pipe.expire(full_key, self._ttl)
                results = pipe.execute()
        except MISCONFIGURED_ERRORS:
            raise
        except UNAVAILABLE_ERRORS as exc:
            raise self._unavailable(exc, key) from exc

        return int(results[0])

    def get(self, key: str) -> int:
        try:
            raw = self._client.get(self._prefix + key)
        except MISCONFIGURED_ERRORS:
            raise
        except UNAVAILABLE_ERRORS as exc:
            raise self._unavailable(exc, key) from exc

        return int(raw) if raw is not None else 0

    def close(self) -> None:
        logger.debug("counter_store.close", extra={"backend": self.name})
        self._client.close()

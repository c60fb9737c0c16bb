"""Factory for building counter stores from configuration."""

from typing import Any

from hourly_throttle.adapters.counter_store.base import AbstractCounterStore
from hourly_throttle.adapters.counter_store.cache_facade import CacheFacadeCounterStore
from hourly_throttle.adapters.counter_store.in_memory import InMemoryCounterStore
from hourly_throttle.adapters.counter_store.redis_store import RedisCounterStore
from hourly_throttle.core.config import ThrottleSettings
from hourly_throttle.core.errors import ConfigurationAppError


def create_counter_store(
    throttle_settings: ThrottleSettings,
    cache: Any = None,
) -> AbstractCounterStore:
    """Resolve the ``cache`` option into a counter store.

    Args:
        throttle_settings: Throttle configuration; supplies the selector when
            ``cache`` is omitted, plus TTL/Redis options.
        cache: Optional override. A backend selector string (``"memory"``,
            ``"redis"``), a ready counter store, or a host cache object
            exposing ``add``/``incr``/``get``.

    Returns:
        AbstractCounterStore: Store instance owned by the caller.

    Raises:
        ConfigurationAppError: If the selector is unknown or the object is
            not usable as a cache.
    """
    if isinstance(cache, AbstractCounterStore):
        return cache

    if cache is not None and not isinstance(cache, str):
        try:
            return CacheFacadeCounterStore(cache, ttl_seconds=throttle_settings.key_ttl_seconds)
        except TypeError as exc:
            raise ConfigurationAppError(
                code="cache_object_invalid",
                message=str(exc),
            ) from exc

    selector = (cache or throttle_settings.cache).lower()

    if selector == "memory":
        return InMemoryCounterStore(ttl_seconds=throttle_settings.key_ttl_seconds)

    if selector == "redis":
        return RedisCounterStore.from_url(
            throttle_settings.redis_url,
            socket_timeout=throttle_settings.redis_socket_timeout_seconds,
            ttl_seconds=throttle_settings.key_ttl_seconds,
            key_prefix=throttle_settings.key_prefix,
        )

    raise ConfigurationAppError(
        code="cache_unknown_backend",
        message=f"Unknown cache backend: '{selector}'. Supported backends: memory, redis",
    )

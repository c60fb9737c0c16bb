"""Counter store adapters - pluggable storage for per-window request counts."""

from hourly_throttle.adapters.counter_store.base import AbstractCounterStore
from hourly_throttle.adapters.counter_store.cache_facade import CacheFacadeCounterStore
from hourly_throttle.adapters.counter_store.factory import create_counter_store
from hourly_throttle.adapters.counter_store.in_memory import InMemoryCounterStore
from hourly_throttle.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "CacheFacadeCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]

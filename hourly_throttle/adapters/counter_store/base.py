"""Counter store interface.

The decider depends on this abstraction (not a concrete backend) so the
storage can be an in-process map, a Redis server or a cache object handed
over by the host application, selected by configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Interface for atomic per-key counters.

    Implementations own atomicity: concurrent ``increment`` calls on the same
    key must each observe a distinct post-increment value. Transient faults
    of the backing service are reported as
    :class:`~hourly_throttle.core.errors.StoreUnavailable`; every other
    failure propagates unchanged.
    """

    #: Short backend label used in logs.
    name: str = "abstract"

    @abstractmethod
    def increment(self, key: str) -> int:
        """Atomically add one to the counter for ``key``.

        Args:
            key: Rate limit key. Created at 0 first when absent.

        Returns:
            The post-increment value (1 for a fresh key).

        Raises:
            StoreUnavailable: If the backing service cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> int:
        """Return the current counter value, or 0 when absent."""
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources. No-op unless the backend holds any."""

"""Rate limit key derivation.

A key names one counting window for one subject. The default shape is
``{identity}_{YYYY-MM-DD-HH}``, so every calendar hour starts a fresh
counter and stale counters are simply never read again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from hourly_throttle.core.errors import ConfigurationAppError

HOUR_BUCKET_FORMAT = "%Y-%m-%d-%H"


@dataclass(frozen=True)
class RequestContext:
    """What the core knows about an inbound request.

    Attributes:
        path: URL path of the request.
        method: HTTP method.
        arrived_at: Timezone-aware arrival time; determines the window bucket.
    """

    path: str
    method: str
    arrived_at: datetime


KeyStrategy = Callable[[RequestContext, str], str]


def hour_bucket(moment: datetime) -> str:
    """Label the calendar hour ``moment`` falls in."""

    return moment.strftime(HOUR_BUCKET_FORMAT)


def default_key_strategy(context: RequestContext, identity: str) -> str:
    """Key one counter per identity per calendar hour."""

    return f"{identity}_{hour_bucket(context.arrived_at)}"


def path_key_strategy(context: RequestContext, identity: str) -> str:
    """Key one counter per URL path per calendar hour, shared by all identities."""

    return f"{context.path}_{hour_bucket(context.arrived_at)}"


class KeyGenerator:
    """Derive the rate limit key for a request.

    Args:
        strategy: Optional replacement for :func:`default_key_strategy`. It
            must be a pure function of its arguments and return a non-empty
            string.
    """

    def __init__(self, strategy: KeyStrategy | None = None) -> None:
        self._strategy = strategy or default_key_strategy

    @property
    def strategy(self) -> KeyStrategy:
        return self._strategy

    def __call__(self, context: RequestContext, identity: str) -> str:
        key = self._strategy(context, identity)
        if not isinstance(key, str) or not key:
            raise ConfigurationAppError(
                code="key_strategy_invalid",
                message="Key strategy must return a non-empty string",
                details={"hint": f"strategy {getattr(self._strategy, '__name__', self._strategy)!s} returned {key!r}"},
            )
        return key

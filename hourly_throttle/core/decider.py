"""Throttle decision engine.

Orchestrates key derivation, the counter store and the quota policy for a
single request. The decider holds no state of its own; everything that
persists between requests lives in the counter store, which is also the only
component that must be safe under concurrent access.

Fault handling:
- ``StoreUnavailable`` from the store fails open (``UNTHROTTLED``) so a
  broken counter store never takes the protected service down with it.
- Any other store exception propagates to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hourly_throttle.adapters.counter_store.base import AbstractCounterStore
from hourly_throttle.core.errors import StoreUnavailable
from hourly_throttle.core.keys import KeyGenerator, RequestContext
from hourly_throttle.core.logging import hash_for_log
from hourly_throttle.core.policy import Decision, RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrottleResult:
    """Decision plus the counter state it was based on.

    Attributes:
        decision: The outcome.
        limit: Configured quota per window.
        count: Post-increment counter value, or None when the store was not
            consulted (bad request, unthrottled, store unavailable).
        remaining: Admissions left in the window, or None when unknown.
    """

    decision: Decision
    limit: int
    count: int | None = None
    remaining: int | None = None


class ThrottleDecider:
    """Decide whether a request is admitted.

    Args:
        store: Shared counter store.
        policy: Quota to enforce.
        key_generator: Key derivation; defaults to identity + calendar hour.
        auth: When True an identity is mandatory and its absence is a bad
            request. When False requests without identity pass unthrottled.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        policy: RateLimitPolicy,
        *,
        key_generator: KeyGenerator | None = None,
        auth: bool = True,
    ) -> None:
        self.store = store
        self.policy = policy
        self.key_generator = key_generator or KeyGenerator()
        self.auth = auth

    def decide(self, context: RequestContext, identity: str | None) -> Decision:
        """Return the decision for one request. See :meth:`evaluate`."""

        return self.evaluate(context, identity).decision

    def evaluate(self, context: RequestContext, identity: str | None) -> ThrottleResult:
        """Count the request and evaluate it against the quota.

        Args:
            context: Request path, method and arrival time.
            identity: Subject supplied by the identity collaborator; ``None``
                (or empty) when it could not produce one.

        Returns:
            ThrottleResult with the decision and counter metadata.

        Raises:
            ConfigurationAppError: If a custom key strategy returns an empty key.
            Exception: Any store failure other than ``StoreUnavailable``.
        """
        limit = self.policy.requests_per_limit

        if not identity:
            if self.auth:
                logger.info(
                    "throttle.bad_request",
                    extra={"path": context.path, "reason": "identity_missing"},
                )
                return ThrottleResult(decision=Decision.BAD_REQUEST, limit=limit)
            return ThrottleResult(decision=Decision.UNTHROTTLED, limit=limit)

        key = self.key_generator(context, identity)
        key_hash = hash_for_log(key)

        try:
            count = self.store.increment(key)
        except StoreUnavailable as exc:
            logger.warning(
                "throttle.store_unavailable",
                extra={
                    "backend": self.store.name,
                    "key_hash": key_hash,
                    "error_code": exc.code,
                    "error_message": exc.message,
                },
            )
            return ThrottleResult(decision=Decision.UNTHROTTLED, limit=limit)

        decision = self.policy.evaluate(count)
        remaining = self.policy.remaining(count)

        if decision is Decision.REJECT:
            logger.warning(
                "throttle.rejected",
                extra={
                    "key_hash": key_hash,
                    "limit": limit,
                    "count": count,
                    "path": context.path,
                },
            )
        else:
            logger.debug(
                "throttle.allowed",
                extra={
                    "key_hash": key_hash,
                    "limit": limit,
                    "remaining": remaining,
                },
            )

        return ThrottleResult(decision=decision, limit=limit, count=count, remaining=remaining)

    def inspect(self, context: RequestContext, identity: str) -> int:
        """Read the current counter for ``identity`` without counting.

        Raises:
            StoreUnavailable: If the store cannot be reached.
        """

        return self.store.get(self.key_generator(context, identity))

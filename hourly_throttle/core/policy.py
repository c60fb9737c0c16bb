"""Quota evaluation and the decision vocabulary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Decision(str, Enum):
    """Outcome of a throttling decision."""

    ALLOW = "allow"
    REJECT = "reject"
    BAD_REQUEST = "bad_request"
    UNTHROTTLED = "unthrottled"

    @property
    def forwards(self) -> bool:
        """Whether the request continues downstream."""
        return self in (Decision.ALLOW, Decision.UNTHROTTLED)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Fixed quota per window.

    Attributes:
        requests_per_limit: Admitted requests per window. The request that
            brings the counter to exactly this value is still allowed; the
            next one is the first rejection.
    """

    requests_per_limit: int = 60

    def __post_init__(self) -> None:
        if self.requests_per_limit < 1:
            raise ValueError("requests_per_limit must be >= 1")

    def evaluate(self, count: int) -> Decision:
        if count > self.requests_per_limit:
            return Decision.REJECT
        return Decision.ALLOW

    def remaining(self, count: int) -> int:
        return max(0, self.requests_per_limit - count)

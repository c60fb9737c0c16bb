"""Application-level exception types.

This module defines the errors the throttle core raises and handles, so the
decider, the counter stores and the HTTP layer agree on one taxonomy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    backend: str
    key_hash: str
    http_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class StoreUnavailable(AppError):
    """Raised by a counter store when its backing service cannot be reached.

    This is the only store failure the decider recovers from (by failing
    open). Every other store error propagates.
    """


class MalformedIdentity(AppError):
    """Raised when the identity collaborator cannot produce a usable subject."""


class ConfigurationAppError(AppError):
    """Raised when throttle wiring or a key strategy is misconfigured."""

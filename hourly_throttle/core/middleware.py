"""HTTP middleware: request correlation and throttling.

``request_id_middleware`` ensures every request/response pair carries a
correlation ID. ``RateLimitMiddleware`` is the HTTP shell around
:class:`~hourly_throttle.core.decider.ThrottleDecider`: it builds the request
context, resolves the identity, asks for a decision and turns it into either
a plain-text error response or a forwarded request.

Usage:
    app.middleware("http")(request_id_middleware)
    app.add_middleware(RateLimitMiddleware, decider=decider)
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from hourly_throttle.core.config import settings
from hourly_throttle.core.decider import ThrottleDecider, ThrottleResult
from hourly_throttle.core.errors import MalformedIdentity
from hourly_throttle.core.identity import IdentityResolver, basic_auth_identity
from hourly_throttle.core.keys import RequestContext
from hourly_throttle.core.logging import clear_request_id, set_request_id
from hourly_throttle.core.policy import Decision

logger = logging.getLogger(__name__)

OVER_RATE_LIMIT_BODY = "Over Rate Limit"
BAD_REQUEST_BODY = "Bad Request"


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides an X-Request-ID header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID
    is generated. The ID is then propagated back in the response headers
    and stored in contextvars for log correlation.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def plain_text_response(status_code: int, body: str, headers: dict[str, str] | None = None) -> Response:
    """Build a ``text/plain`` response with an exact Content-Length."""

    payload = body.encode("utf-8")
    response_headers = {
        "Content-Type": "text/plain",
        "Content-Length": str(len(payload)),
    }
    if headers:
        response_headers.update(headers)
    return Response(content=payload, status_code=status_code, headers=response_headers)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Throttle requests per identity per window.

    Decision mapping:
    - ALLOW / UNTHROTTLED: forward downstream unchanged.
    - REJECT: 503 ``Over Rate Limit``.
    - BAD_REQUEST: 400 ``Bad Request``.

    Args:
        app: Downstream ASGI app.
        decider: Configured decision engine (owns the shared counter store).
        identity_resolver: Callable returning the request's identity or None;
            may raise ``MalformedIdentity``.
        clock: Source of the arrival time used for window bucketing.
        exempt_paths: Paths forwarded without consulting the decider.
        include_headers: Add ``X-RateLimit-Limit``/``X-RateLimit-Remaining``
            when the counter was consulted.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        decider: ThrottleDecider,
        identity_resolver: IdentityResolver = basic_auth_identity,
        clock: Callable[[], datetime] = utcnow,
        exempt_paths: Iterable[str] = (),
        include_headers: bool = False,
    ) -> None:
        super().__init__(app)
        self.decider = decider
        self.identity_resolver = identity_resolver
        self.clock = clock
        self.exempt_paths = frozenset(exempt_paths)
        self.include_headers = include_headers

    def _resolve_identity(self, request: Request) -> str | None:
        try:
            return self.identity_resolver(request)
        except MalformedIdentity as exc:
            logger.info(
                "throttle.identity_malformed",
                extra={"error_code": exc.code, "path": request.url.path},
            )
            return None

    def _rate_limit_headers(self, result: ThrottleResult) -> dict[str, str]:
        if not self.include_headers or result.remaining is None:
            return {}
        return {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        context = RequestContext(
            path=request.url.path,
            method=request.method,
            arrived_at=self.clock(),
        )
        identity = self._resolve_identity(request)

        # Store calls may block on the network; keep them off the event loop.
        result = await run_in_threadpool(self.decider.evaluate, context, identity)

        request.state.throttle_context = context
        request.state.throttle_identity = identity
        request.state.throttle_result = result

        headers = self._rate_limit_headers(result)

        if result.decision is Decision.REJECT:
            return plain_text_response(503, OVER_RATE_LIMIT_BODY, headers)
        if result.decision is Decision.BAD_REQUEST:
            return plain_text_response(400, BAD_REQUEST_BODY)

        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response

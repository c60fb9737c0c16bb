from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (middleware, throttle wiring, handlers,
routers) so tests can build isolated apps with their own counter stores.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable

from fastapi import FastAPI

from hourly_throttle.api.routes import health_router, throttle_router
from hourly_throttle.core.config import Settings, settings
from hourly_throttle.core.exception_handlers import setup_exception_handlers
from hourly_throttle.core.identity import IdentityResolver, basic_auth_identity
from hourly_throttle.core.keys import KeyStrategy
from hourly_throttle.core.logging import configure_logging
from hourly_throttle.core.middleware import RateLimitMiddleware, utcnow, request_id_middleware
from hourly_throttle.core.rate_limit import build_throttle_decider


def create_app(
    app_settings: Settings | None = None,
    *,
    cache: Any = None,
    key: KeyStrategy | None = None,
    identity_resolver: IdentityResolver = basic_auth_identity,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build from; defaults to the global settings.
        cache: Counter store override (selector, store or host cache object).
        key: Key strategy override.
        identity_resolver: Identity collaborator used by the middleware.
        clock: Arrival-time source used for window bucketing.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    cfg = app_settings or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    decider = build_throttle_decider(cfg.throttle, cache=cache, key=key)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        decider.store.close()

    app = FastAPI(
        title="Hourly Throttle",
        description=(
            "Fixed-window request throttling per identity. Requests over the "
            "hourly quota receive 503 'Over Rate Limit'; requests without a "
            "usable identity receive 400 'Bad Request' when auth is enabled."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.throttle_decider = decider
    app.state.throttle_clock = clock
    app.state.identity_resolver = identity_resolver

    # Middleware (last registered runs first)
    app.add_middleware(
        RateLimitMiddleware,
        decider=decider,
        identity_resolver=identity_resolver,
        clock=clock,
        exempt_paths=cfg.throttle.exempt_paths,
        include_headers=cfg.throttle.include_headers,
    )
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(throttle_router, prefix="/v1")
    app.include_router(health_router)

    return app

"""Throttle wiring for the HTTP layer.

This module assembles a :class:`ThrottleDecider` from configuration and
exposes it to routes.

Design goals:
- Explicit ownership: the decider (and its counter store) is built once per
  app and kept on ``app.state``, not in module globals.
- Swap-friendly: the ``cache`` option accepts a selector, a ready store or a
  host cache object; the ``key`` option replaces key derivation.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request

from hourly_throttle.adapters.counter_store.factory import create_counter_store
from hourly_throttle.core.config import ThrottleSettings, settings
from hourly_throttle.core.decider import ThrottleDecider
from hourly_throttle.core.keys import KeyGenerator, KeyStrategy
from hourly_throttle.core.policy import RateLimitPolicy

logger = logging.getLogger(__name__)


def build_throttle_decider(
    throttle_settings: ThrottleSettings | None = None,
    *,
    cache: Any = None,
    key: KeyStrategy | None = None,
    requests_per_hour: int | None = None,
    auth: bool | None = None,
) -> ThrottleDecider:
    """Build a decider from settings plus constructor-time overrides.

    Args:
        throttle_settings: Base configuration; defaults to global settings.
        cache: Backend selector (``"memory"``/``"redis"``), counter store
            instance, or host cache object. Defaults to ``settings.cache``.
        key: Key strategy ``(context, identity) -> str``.
        requests_per_hour: Overrides the configured quota.
        auth: Overrides whether an identity is mandatory.

    Returns:
        ThrottleDecider: Ready to share across requests.
    """

    cfg = throttle_settings or settings.throttle
    store = create_counter_store(cfg, cache)
    policy = RateLimitPolicy(
        requests_per_limit=requests_per_hour if requests_per_hour is not None else cfg.requests_per_hour,
    )
    require_identity = cfg.auth if auth is None else auth

    logger.info(
        "throttle.configured",
        extra={
            "backend": store.name,
            "limit": policy.requests_per_limit,
            "auth": require_identity,
            "custom_key": key is not None,
        },
    )

    return ThrottleDecider(
        store,
        policy,
        key_generator=KeyGenerator(key),
        auth=require_identity,
    )


def get_throttle_decider(request: Request) -> ThrottleDecider:
    """FastAPI dependency returning the app's decider."""

    return request.app.state.throttle_decider

from __future__ import annotations

from fastapi import APIRouter, Depends

from hourly_throttle.core.decider import ThrottleDecider
from hourly_throttle.core.rate_limit import get_throttle_decider

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(decider: ThrottleDecider = Depends(get_throttle_decider)) -> dict:
    """Health check endpoint.

    Exempt from throttling. Does not touch the counter store: a store outage
    degrades to unthrottled traffic, not to an unhealthy service.

    Returns:
        dict: ``status`` plus the configured counter store backend.
    """

    return {"status": "ok", "counter_store": decider.store.name}

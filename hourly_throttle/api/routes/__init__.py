from __future__ import annotations

from hourly_throttle.api.routes.health import router as health_router
from hourly_throttle.api.routes.throttle import router as throttle_router

__all__ = ["health_router", "throttle_router"]

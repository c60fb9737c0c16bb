"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable so no .env file is loaded and
pins throttle settings to predictable values.
"""

import base64
import os
from datetime import datetime, timezone

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("THROTTLE_CACHE", "memory")
os.environ.setdefault("THROTTLE_REQUESTS_PER_HOUR", "60")
os.environ.setdefault("THROTTLE_AUTH", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from hourly_throttle.core.keys import RequestContext


class FakeClock:
    """Deterministic, settable arrival-time source."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 3, 14, 9, 15, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment


def basic_auth(username: str, password: str = "secret") -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context() -> RequestContext:
    return RequestContext(
        path="/v1/ping",
        method="GET",
        arrived_at=datetime(2024, 3, 14, 9, 15, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def auth_header():
    """Build a Basic Authorization header for a username."""
    return basic_auth

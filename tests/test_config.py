"""Tests for settings parsing and decider wiring."""

import pytest
from pydantic import ValidationError

from hourly_throttle.adapters.counter_store.in_memory import InMemoryCounterStore
from hourly_throttle.core.config import LogSettings, ThrottleSettings
from hourly_throttle.core.keys import path_key_strategy
from hourly_throttle.core.rate_limit import build_throttle_decider


class TestThrottleSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("THROTTLE_CACHE", "THROTTLE_REQUESTS_PER_HOUR", "THROTTLE_AUTH"):
            monkeypatch.delenv(name, raising=False)

        cfg = ThrottleSettings()

        assert cfg.requests_per_hour == 60
        assert cfg.cache == "memory"
        assert cfg.auth is True
        assert cfg.include_headers is False
        assert cfg.exempt_paths == ["/health"]

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THROTTLE_REQUESTS_PER_HOUR", "120")
        monkeypatch.setenv("THROTTLE_CACHE", "redis")
        monkeypatch.setenv("THROTTLE_AUTH", "false")
        monkeypatch.setenv("THROTTLE_EXEMPT_PATHS", '["/health", "/metrics"]')

        cfg = ThrottleSettings()

        assert cfg.requests_per_hour == 120
        assert cfg.cache == "redis"
        assert cfg.auth is False
        assert cfg.exempt_paths == ["/health", "/metrics"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"requests_per_hour": 0},
            {"cache": "memcached"},
            {"key_ttl_seconds": 0},
            {"redis_socket_timeout_seconds": 0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            ThrottleSettings(**kwargs)


def test_log_settings_reject_unknown_format() -> None:
    with pytest.raises(ValidationError):
        LogSettings(format="xml")


class TestBuildThrottleDecider:
    def test_uses_settings(self) -> None:
        decider = build_throttle_decider(ThrottleSettings(requests_per_hour=5, auth=False))

        assert decider.policy.requests_per_limit == 5
        assert decider.auth is False
        assert isinstance(decider.store, InMemoryCounterStore)

    def test_constructor_overrides(self) -> None:
        store = InMemoryCounterStore()

        decider = build_throttle_decider(
            ThrottleSettings(),
            cache=store,
            key=path_key_strategy,
            requests_per_hour=7,
            auth=False,
        )

        assert decider.store is store
        assert decider.key_generator.strategy is path_key_strategy
        assert decider.policy.requests_per_limit == 7
        assert decider.auth is False

"""Unit tests for the throttle decision engine."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from hourly_throttle.adapters.counter_store.base import AbstractCounterStore
from hourly_throttle.adapters.counter_store.in_memory import InMemoryCounterStore
from hourly_throttle.core.decider import ThrottleDecider
from hourly_throttle.core.errors import StoreUnavailable
from hourly_throttle.core.keys import KeyGenerator, RequestContext, path_key_strategy
from hourly_throttle.core.policy import Decision, RateLimitPolicy


class DownStore(AbstractCounterStore):
    """Store whose backend is unreachable on every call."""

    name = "down"

    def __init__(self) -> None:
        self.calls = 0

    def increment(self, key: str) -> int:
        self.calls += 1
        raise StoreUnavailable(code="counter_store_unavailable", message="connection refused")

    def get(self, key: str) -> int:
        raise StoreUnavailable(code="counter_store_unavailable", message="connection refused")


def _decider(limit: int = 3, *, auth: bool = True, store=None, strategy=None) -> ThrottleDecider:
    return ThrottleDecider(
        store if store is not None else InMemoryCounterStore(),
        RateLimitPolicy(requests_per_limit=limit),
        key_generator=KeyGenerator(strategy),
        auth=auth,
    )


def test_joe_exhausts_quota_while_jane_is_independent(context: RequestContext) -> None:
    decider = _decider(limit=3)

    decisions = [decider.decide(context, "joe") for _ in range(4)]

    assert decisions == [Decision.ALLOW, Decision.ALLOW, Decision.ALLOW, Decision.REJECT]
    assert decider.decide(context, "jane") is Decision.ALLOW


def test_rejected_requests_still_count(context: RequestContext) -> None:
    store = InMemoryCounterStore()
    decider = _decider(limit=1, store=store)

    for _ in range(5):
        decider.decide(context, "joe")

    assert store.get("joe_2024-03-14-09") == 5
    assert decider.decide(context, "joe") is Decision.REJECT


def test_nth_request_up_to_limit_is_allowed(context: RequestContext) -> None:
    decider = _decider(limit=60)

    results = [decider.evaluate(context, "joe") for _ in range(61)]

    assert all(r.decision is Decision.ALLOW for r in results[:60])
    assert results[59].remaining == 0
    assert results[60].decision is Decision.REJECT
    assert results[60].count == 61


def test_window_rollover_resets_admission() -> None:
    decider = _decider(limit=2)
    nine = datetime(2024, 3, 14, 9, 59, 59, tzinfo=timezone.utc)
    ten = nine + timedelta(seconds=1)
    in_nine = RequestContext(path="/", method="GET", arrived_at=nine)
    in_ten = RequestContext(path="/", method="GET", arrived_at=ten)

    assert [decider.decide(in_nine, "joe") for _ in range(3)] == [
        Decision.ALLOW,
        Decision.ALLOW,
        Decision.REJECT,
    ]
    # Boundary burst: a full quota is available one second later.
    assert [decider.decide(in_ten, "joe") for _ in range(2)] == [Decision.ALLOW, Decision.ALLOW]


def test_missing_identity_with_auth_is_bad_request(context: RequestContext) -> None:
    store = MagicMock(spec=AbstractCounterStore)
    decider = _decider(auth=True, store=store)

    assert decider.decide(context, None) is Decision.BAD_REQUEST
    assert decider.decide(context, "") is Decision.BAD_REQUEST
    store.increment.assert_not_called()


def test_missing_identity_without_auth_is_unthrottled(context: RequestContext) -> None:
    store = MagicMock(spec=AbstractCounterStore)
    decider = _decider(auth=False, store=store)

    assert decider.decide(context, None) is Decision.UNTHROTTLED
    store.increment.assert_not_called()


def test_identity_is_throttled_even_without_auth(context: RequestContext) -> None:
    decider = _decider(limit=1, auth=False)

    assert decider.decide(context, "joe") is Decision.ALLOW
    assert decider.decide(context, "joe") is Decision.REJECT


def test_store_unavailable_fails_open(context: RequestContext, caplog: pytest.LogCaptureFixture) -> None:
    store = DownStore()
    decider = _decider(limit=1, store=store)

    with caplog.at_level("WARNING", logger="hourly_throttle.core.decider"):
        decisions = [decider.decide(context, "joe") for _ in range(10)]

    assert decisions == [Decision.UNTHROTTLED] * 10
    assert store.calls == 10
    assert any(record.getMessage() == "throttle.store_unavailable" for record in caplog.records)


def test_unexpected_store_errors_propagate(context: RequestContext) -> None:
    store = MagicMock(spec=AbstractCounterStore)
    store.increment.side_effect = RuntimeError("protocol corruption")
    decider = _decider(store=store)

    with pytest.raises(RuntimeError, match="protocol corruption"):
        decider.decide(context, "joe")


def test_path_strategy_shares_counter_between_identities(context: RequestContext) -> None:
    decider = _decider(limit=2, strategy=path_key_strategy)

    assert decider.decide(context, "joe") is Decision.ALLOW
    assert decider.decide(context, "jane") is Decision.ALLOW
    assert decider.decide(context, "jim") is Decision.REJECT

    other_path = RequestContext(path="/v1/other", method="GET", arrived_at=context.arrived_at)
    assert decider.decide(other_path, "joe") is Decision.ALLOW


def test_concurrent_decisions_admit_exactly_the_quota(context: RequestContext) -> None:
    limit = 50
    decider = _decider(limit=limit)

    with ThreadPoolExecutor(max_workers=16) as pool:
        decisions = list(pool.map(lambda _: decider.decide(context, "joe"), range(200)))

    assert decisions.count(Decision.ALLOW) == limit
    assert decisions.count(Decision.REJECT) == 200 - limit
    assert decider.store.get("joe_2024-03-14-09") == 200


def test_inspect_reads_without_counting(context: RequestContext) -> None:
    decider = _decider()
    decider.decide(context, "joe")
    decider.decide(context, "joe")

    assert decider.inspect(context, "joe") == 2
    assert decider.inspect(context, "joe") == 2
    assert decider.inspect(context, "jane") == 0

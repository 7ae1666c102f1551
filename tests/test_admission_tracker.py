"""Unit tests for the in-memory admission tracker."""

import threading
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import Policy
from app.adapters.rate_limit.in_memory import InMemoryAdmissionTracker
from app.core.errors import ConfigurationAppError


def test_example_scenario() -> None:
    tracker = InMemoryAdmissionTracker()
    policy = Policy(limit=3, window_ms=1000)

    results = [tracker.check_and_consume("ip_1.2.3.4", policy, now) for now in (0, 100, 200)]
    assert [r.admitted for r in results] == [True, True, True]
    assert [r.remaining for r in results] == [2, 1, 0]

    rejected = tracker.check_and_consume("ip_1.2.3.4", policy, 300)
    assert rejected.admitted is False
    assert rejected.remaining == 0
    assert rejected.reset_at_ms == 1000

    fresh = tracker.check_and_consume("ip_1.2.3.4", policy, 1001)
    assert fresh.admitted is True
    assert fresh.remaining == 2
    assert fresh.reset_at_ms == 2001


def test_admits_exactly_limit_calls_within_window() -> None:
    tracker = InMemoryAdmissionTracker()
    policy = Policy(limit=5, window_ms=60_000)

    admitted = [tracker.check_and_consume("user_1", policy, 10).admitted for _ in range(5)]
    assert all(admitted)
    assert tracker.check_and_consume("user_1", policy, 10).admitted is False


def test_rejection_does_not_consume() -> None:
    tracker = InMemoryAdmissionTracker()
    policy = Policy(limit=1, window_ms=1000)

    tracker.check_and_consume("k", policy, 0)
    for now in (1, 2, 3):
        assert tracker.check_and_consume("k", policy, now).admitted is False

    # A new window starts with the full budget regardless of rejected attempts
    assert tracker.check_and_consume("k", policy, 1001).remaining == 0
    assert tracker.check_and_consume("k", policy, 1001).admitted is False


def test_window_boundary_is_inclusive_of_window_end() -> None:
    tracker = InMemoryAdmissionTracker()
    policy = Policy(limit=2, window_ms=1000)
    start = 5_000

    tracker.check_and_consume("k", policy, start)
    tracker.check_and_consume("k", policy, start)

    assert tracker.check_and_consume("k", policy, start + 999).admitted is False
    assert tracker.check_and_consume("k", policy, start + 1000).admitted is False

    result = tracker.check_and_consume("k", policy, start + 1001)
    assert result.admitted is True
    assert result.remaining == 1
    assert result.reset_at_ms == start + 1001 + 1000


def test_window_anchored_at_first_request_not_clock() -> None:
    tracker = InMemoryAdmissionTracker()
    policy = Policy(limit=1, window_ms=1000)

    first = tracker.check_and_consume("k", policy, 1_234)
    assert first.reset_at_ms == 2_234


def test_identity_isolation() -> None:
    tracker = InMemoryAdmissionTracker()
    policy = Policy(limit=1, window_ms=60_000)

    assert tracker.check_and_consume("user_1", policy, 0).admitted is True
    assert tracker.check_and_consume("user_1", policy, 0).admitted is False

    other = tracker.check_and_consume("ip_1", policy, 0)
    assert other.admitted is True
    assert other.remaining == 0
    assert len(tracker) == 2


def test_uses_clock_when_now_not_given() -> None:
    clock = Mock(return_value=1000.0)
    tracker = InMemoryAdmissionTracker(clock=clock)
    policy = Policy(limit=1, window_ms=10_000)

    assert tracker.check_and_consume("k", policy).reset_at_ms == 1_010_000
    assert tracker.check_and_consume("k", policy).admitted is False

    clock.return_value = 1011.0
    assert tracker.check_and_consume("k", policy).admitted is True


def test_empty_identity_key_rejected() -> None:
    tracker = InMemoryAdmissionTracker()

    with pytest.raises(ValueError):
        tracker.check_and_consume("", Policy(limit=1, window_ms=1000), 0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_ms": 1000},
        {"limit": -1, "window_ms": 1000},
        {"limit": 1, "window_ms": 0},
        {"limit": 1, "window_ms": -5},
    ],
)
def test_invalid_policy_is_configuration_error(kwargs: dict) -> None:
    with pytest.raises(ConfigurationAppError) as exc_info:
        Policy(**kwargs).validate()

    assert exc_info.value.code == "invalid_rate_limit_policy"


def test_valid_policy_validate_returns_self() -> None:
    policy = Policy(limit=3, window_ms=1000)
    assert policy.validate() is policy


class TestPeek:
    def test_unknown_identity_reports_full_quota(self) -> None:
        tracker = InMemoryAdmissionTracker()
        result = tracker.peek("k", Policy(limit=3, window_ms=1000), 50)

        assert result.remaining == 3
        assert result.reset_at_ms == 1050
        assert len(tracker) == 0

    def test_does_not_consume(self) -> None:
        tracker = InMemoryAdmissionTracker()
        policy = Policy(limit=2, window_ms=1000)
        tracker.check_and_consume("k", policy, 0)

        for _ in range(3):
            assert tracker.peek("k", policy, 10).remaining == 1
        assert tracker.check_and_consume("k", policy, 10).remaining == 0

    def test_exhausted_identity(self) -> None:
        tracker = InMemoryAdmissionTracker()
        policy = Policy(limit=1, window_ms=1000)
        tracker.check_and_consume("k", policy, 0)

        result = tracker.peek("k", policy, 500)
        assert result.admitted is False
        assert result.remaining == 0
        assert result.reset_at_ms == 1000

    def test_expired_window_reports_full_quota(self) -> None:
        tracker = InMemoryAdmissionTracker()
        policy = Policy(limit=1, window_ms=1000)
        tracker.check_and_consume("k", policy, 0)

        assert tracker.peek("k", policy, 1001).remaining == 1


class TestSweepStale:
    def test_removes_only_stale_entries(self) -> None:
        tracker = InMemoryAdmissionTracker()
        policy = Policy(limit=10, window_ms=100_000)

        tracker.check_and_consume("old_1", policy, 0)
        tracker.check_and_consume("old_2", policy, 10)
        tracker.check_and_consume("fresh", policy, 900)

        removed = tracker.sweep_stale(now_ms=1000, stale_threshold_ms=500)

        assert removed == 2
        assert "fresh" in tracker
        assert "old_1" not in tracker
        assert "old_2" not in tracker
        assert len(tracker) == 1

    def test_entry_exactly_at_threshold_survives(self) -> None:
        tracker = InMemoryAdmissionTracker()
        tracker.check_and_consume("k", Policy(limit=1, window_ms=10), 500)

        assert tracker.sweep_stale(now_ms=1000, stale_threshold_ms=500) == 0
        assert tracker.sweep_stale(now_ms=1001, stale_threshold_ms=500) == 1

    def test_empty_tracker(self) -> None:
        assert InMemoryAdmissionTracker().sweep_stale(now_ms=0, stale_threshold_ms=1) == 0

    def test_swept_identity_starts_fresh(self) -> None:
        tracker = InMemoryAdmissionTracker()
        policy = Policy(limit=1, window_ms=10_000)
        tracker.check_and_consume("k", policy, 0)
        tracker.sweep_stale(now_ms=5_000, stale_threshold_ms=1_000)

        assert tracker.check_and_consume("k", policy, 5_000).admitted is True


def test_concurrent_consumers_never_exceed_limit() -> None:
    tracker = InMemoryAdmissionTracker()
    policy = Policy(limit=100, window_ms=60_000)
    admitted: list[bool] = []
    admitted_lock = threading.Lock()

    def worker() -> None:
        for _ in range(50):
            result = tracker.check_and_consume("shared", policy, 0)
            with admitted_lock:
                admitted.append(result.admitted)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert admitted.count(True) == 100
    assert admitted.count(False) == 300

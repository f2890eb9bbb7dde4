"""Tests for the backend retry policy."""

from __future__ import annotations

import pytest

from CatalogSync.errors import BackendUnavailableError, NotFoundError, create_backend_retry_policy
from CatalogSync.errors.retry_policies import call_with_retry


def _failing(times, exc_factory):
    state = {"calls": 0}

    def _fn():
        state["calls"] += 1
        if state["calls"] <= times:
            raise exc_factory()
        return "ok"

    return _fn, state


def test_transient_failure_is_retried():
    fn, state = _failing(2, lambda: BackendUnavailableError("timeout"))
    policy = create_backend_retry_policy(max_attempts=3, base_delay_ms=0, max_delay_ms=0)

    assert call_with_retry(policy, fn) == "ok"
    assert state["calls"] == 3


def test_last_error_is_reraised():
    fn, state = _failing(5, lambda: BackendUnavailableError("timeout"))
    policy = create_backend_retry_policy(max_attempts=2, base_delay_ms=0, max_delay_ms=0)

    with pytest.raises(BackendUnavailableError):
        call_with_retry(policy, fn)
    assert state["calls"] == 2


def test_other_errors_are_not_retried():
    fn, state = _failing(1, lambda: NotFoundError("missing"))
    policy = create_backend_retry_policy(max_attempts=3, base_delay_ms=0, max_delay_ms=0)

    with pytest.raises(NotFoundError):
        call_with_retry(policy, fn)
    assert state["calls"] == 1


def test_policy_is_reusable():
    policy = create_backend_retry_policy(max_attempts=2, base_delay_ms=0, max_delay_ms=0)
    for _ in range(3):
        fn, state = _failing(1, lambda: BackendUnavailableError("timeout"))
        assert call_with_retry(policy, fn) == "ok"


def test_invalid_attempts():
    with pytest.raises(ValueError):
        create_backend_retry_policy(max_attempts=0)

"""Tests for the backoff executor."""

from unittest.mock import Mock

import pytest
import requests

from fetchers.backoff import BackoffExecutor, RetryProgress
from fetchers.errors import (
    AuthFailureError,
    MalformedRequestError,
    NotFoundError,
    RateLimitedError,
    RetriesExhaustedError,
    TransientError,
)
from models.config_models import BackoffPolicy


def make_executor(**kwargs):
    sleeps = []
    kwargs.setdefault("sleep", sleeps.append)
    executor = BackoffExecutor(**kwargs)
    return executor, sleeps


class TestComputeDelay:
    """Delay grows exponentially and is capped."""

    def test_doubles_from_base(self):
        executor, _ = make_executor(base_delay_ms=250, cap_delay_ms=10000)
        assert [executor.compute_delay(n) for n in range(4)] == [0.25, 0.5, 1.0, 2.0]

    def test_never_exceeds_cap(self):
        executor, _ = make_executor(base_delay_ms=1000, cap_delay_ms=10000)
        assert executor.compute_delay(3) == 8.0
        assert executor.compute_delay(4) == 10.0
        assert executor.compute_delay(10) == 10.0

    def test_from_policy(self):
        executor = BackoffExecutor.from_policy(BackoffPolicy(base_delay_ms=1000, cap_delay_ms=10000))
        assert executor.base_delay_ms == 1000
        assert executor.cap_delay_ms == 10000
        assert executor.max_attempts == 5


class TestExecute:
    """Retry behavior per failure class."""

    def test_success_returns_value_unchanged(self):
        executor, sleeps = make_executor()
        result = {"items": []}
        assert executor.execute(lambda: result) is result
        assert sleeps == []

    def test_retries_transient_then_succeeds(self):
        executor, sleeps = make_executor(base_delay_ms=250, cap_delay_ms=10000)
        call = Mock(side_effect=[TransientError("502", status_code=502), TransientError("503"), "ok"])

        assert executor.execute(call) == "ok"
        assert call.call_count == 3
        assert sleeps == [0.25, 0.5]

    def test_network_errors_are_retryable(self):
        executor, sleeps = make_executor()
        call = Mock(side_effect=[requests.ConnectionError("reset"), requests.Timeout("slow"), 42])

        assert executor.execute(call) == 42
        assert len(sleeps) == 2

    def test_always_failing_call_exhausts_budget(self):
        """Five retries after the first call, waits 1, 2, 4, 8 and 10 seconds."""
        executor, sleeps = make_executor(base_delay_ms=1000, cap_delay_ms=10000, max_attempts=5)
        error = TransientError("Server error 500", status_code=500)
        call = Mock(side_effect=error)

        with pytest.raises(RetriesExhaustedError) as exc_info:
            executor.execute(call)

        assert call.call_count == 6
        assert sleeps == [1.0, 2.0, 4.0, 8.0, 10.0]
        assert exc_info.value.last_error is error
        assert exc_info.value.attempts == 6
        assert exc_info.value.status_code == 500

    def test_attempt_argument_shrinks_remaining_budget(self):
        executor, sleeps = make_executor(max_attempts=5)
        call = Mock(side_effect=TransientError("down"))

        with pytest.raises(RetriesExhaustedError):
            executor.execute(call, attempt=4)

        assert call.call_count == 2
        assert len(sleeps) == 1

    def test_budgets_are_not_shared_between_calls(self):
        executor, sleeps = make_executor(max_attempts=2)
        first = Mock(side_effect=[TransientError("x"), TransientError("x"), "a"])
        second = Mock(side_effect=[TransientError("y"), TransientError("y"), "b"])

        assert executor.execute(first) == "a"
        assert executor.execute(second) == "b"
        assert len(sleeps) == 4

    @pytest.mark.parametrize("error", [
        MalformedRequestError("bad query", status_code=422),
        NotFoundError("missing", status_code=404),
        ValueError("not a remote failure"),
    ])
    def test_non_retryable_errors_propagate_immediately(self, error):
        executor, sleeps = make_executor()
        call = Mock(side_effect=error)

        with pytest.raises(type(error)):
            executor.execute(call)

        assert call.call_count == 1
        assert sleeps == []

    def test_auth_failure_runs_hook_and_is_not_retried(self):
        hook = Mock()
        executor, sleeps = make_executor(on_auth_failure=hook)
        call = Mock(side_effect=AuthFailureError("Bad credentials", status_code=401))

        with pytest.raises(AuthFailureError):
            executor.execute(call)

        hook.assert_called_once_with()
        assert call.call_count == 1
        assert sleeps == []


class TestRateLimit:
    """Reset hints stretch the wait, bounded by the cap."""

    def test_waits_until_reset_when_longer_than_backoff(self):
        executor, sleeps = make_executor(base_delay_ms=1000, cap_delay_ms=10000, clock=lambda: 1000.0)
        call = Mock(side_effect=[RateLimitedError("limited", status_code=403, reset_at=1006), "ok"])

        assert executor.execute(call) == "ok"
        assert sleeps == [6.0]

    def test_reset_wait_is_clamped_to_cap(self):
        executor, sleeps = make_executor(base_delay_ms=1000, cap_delay_ms=10000, clock=lambda: 1000.0)
        call = Mock(side_effect=[RateLimitedError("limited", status_code=429, reset_at=1000 + 3600), "ok"])

        executor.execute(call)
        assert sleeps == [10.0]

    def test_backoff_wins_when_reset_is_sooner(self):
        executor, sleeps = make_executor(base_delay_ms=1000, cap_delay_ms=10000, clock=lambda: 1000.0)
        call = Mock(side_effect=[RateLimitedError("limited", reset_at=1000), "ok"])

        executor.execute(call)
        assert sleeps == [1.0]

    def test_exhausted_rate_limit_has_user_message(self):
        executor, _ = make_executor(max_attempts=1)
        call = Mock(side_effect=RateLimitedError("limited", status_code=403))

        with pytest.raises(RetriesExhaustedError) as exc_info:
            executor.execute(call)

        assert exc_info.value.is_rate_limit
        assert "rate limit exceeded" in exc_info.value.user_message


class TestProgress:
    """Progress callback sees every wait before it happens."""

    def test_callback_receives_attempt_and_delay(self):
        seen = []
        executor, _ = make_executor(base_delay_ms=250, cap_delay_ms=10000, on_retry=seen.append)
        call = Mock(side_effect=[TransientError("a"), TransientError("b"), "ok"])

        executor.execute(call)

        assert [p.attempt for p in seen] == [1, 2]
        assert [p.delay_seconds for p in seen] == [0.25, 0.5]
        assert all(isinstance(p, RetryProgress) and p.max_attempts == 5 for p in seen)

    def test_per_call_callback_overrides_default(self):
        default, override = Mock(), Mock()
        executor, _ = make_executor(on_retry=default)

        executor.execute(Mock(side_effect=[TransientError("a"), "ok"]), on_retry=override)

        override.assert_called_once()
        default.assert_not_called()

"""Tests for the failure taxonomy."""

from fetchers.errors import (
    GitHubAPIError,
    RateLimitedError,
    RetriesExhaustedError,
    TransientError,
)


class TestRateLimitedError:
    def test_is_transient(self):
        assert issubclass(RateLimitedError, TransientError)
        assert issubclass(TransientError, GitHubAPIError)

    def test_minutes_until_reset_rounds_up(self):
        error = RateLimitedError("limited", reset_at=1000 + 125)
        assert error.seconds_until_reset(now=1000) == 125
        assert error.minutes_until_reset(now=1000) == 3

    def test_minutes_until_reset_is_at_least_one(self):
        error = RateLimitedError("limited", reset_at=1000)
        assert error.minutes_until_reset(now=2000) == 1

    def test_no_hint(self):
        error = RateLimitedError("limited")
        assert error.seconds_until_reset(now=1000) is None
        assert error.minutes_until_reset(now=1000) is None


class TestRetriesExhaustedError:
    def test_rate_limit_message_without_hint(self):
        error = RetriesExhaustedError(RateLimitedError("limited", status_code=429), attempts=6)
        assert error.is_rate_limit
        assert error.status_code == 429
        assert error.user_message == "GitHub API rate limit exceeded. Try again in a few minutes."

    def test_generic_message(self):
        error = RetriesExhaustedError(TransientError("Server error 503", status_code=503), attempts=6)
        assert not error.is_rate_limit
        assert "not responding" in error.user_message
        assert "6 attempts" in str(error)

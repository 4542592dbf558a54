"""Failure taxonomy for calls to GitHub and the turn service.

Retryable:
- TransientError: HTTP 5xx or a transport-level failure
- RateLimitedError: 429, or 403 carrying a rate-limit signal

Not retried:
- AuthFailureError: 401; clears the stored token
- ForbiddenError: 403 that is not a rate limit (SSO enforcement, missing scope)
- MalformedRequestError: 400/422
- NotFoundError: 404

RetriesExhaustedError wraps the last retryable error once the attempt
budget runs out.
"""

import math
import time
from typing import Optional


class GitHubAPIError(Exception):
    """Base class for all remote-call failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientError(GitHubAPIError):
    """Server error or network failure; safe to retry."""


class RateLimitedError(TransientError):
    """The API refused the call because the rate-limit budget is spent.

    Args:
        message: Error description
        status_code: HTTP status (403 or 429)
        reset_at: Unix timestamp when the budget resets, if the server sent one
    """

    def __init__(self, message: str, status_code: Optional[int] = None, reset_at: Optional[int] = None):
        super().__init__(message, status_code)
        self.reset_at = reset_at

    def seconds_until_reset(self, now: Optional[float] = None) -> Optional[float]:
        if self.reset_at is None:
            return None
        current = time.time() if now is None else now
        return max(0.0, self.reset_at - current)

    def minutes_until_reset(self, now: Optional[float] = None) -> Optional[int]:
        seconds = self.seconds_until_reset(now)
        if seconds is None:
            return None
        return max(1, math.ceil(seconds / 60))


class AuthFailureError(GitHubAPIError):
    """Credential rejected; the stored token is cleared and the call is not retried."""


class ForbiddenError(GitHubAPIError):
    """Access denied for a reason other than rate limiting; the token stays valid."""


class MalformedRequestError(GitHubAPIError):
    """The request itself is invalid (bad query syntax, validation failure)."""


class NotFoundError(GitHubAPIError):
    """The requested resource does not exist or is not visible to this token."""


class RetriesExhaustedError(GitHubAPIError):
    """A retryable failure persisted through every allowed attempt."""

    def __init__(self, last_error: Exception, attempts: int):
        status_code = getattr(last_error, "status_code", None)
        super().__init__(f"Gave up after {attempts} attempts: {last_error}", status_code)
        self.last_error = last_error
        self.attempts = attempts

    @property
    def is_rate_limit(self) -> bool:
        return isinstance(self.last_error, RateLimitedError)

    @property
    def user_message(self) -> str:
        """Short notice suitable for showing to the dashboard user."""
        if isinstance(self.last_error, RateLimitedError):
            minutes = self.last_error.minutes_until_reset()
            if minutes is not None:
                unit = "minute" if minutes == 1 else "minutes"
                return f"GitHub API rate limit exceeded. Try again in {minutes} {unit}."
            return "GitHub API rate limit exceeded. Try again in a few minutes."
        return "GitHub is not responding right now. Please try again shortly."

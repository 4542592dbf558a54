"""Progressive-delay retry around a single remote call.

The wrapped call must be idempotent: a call that timed out on our side
may still have reached the server, and it will be issued again.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import requests

from fetchers.errors import (
    AuthFailureError,
    RateLimitedError,
    RetriesExhaustedError,
    TransientError,
)
from models.config_models import BackoffPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (TransientError, requests.ConnectionError, requests.Timeout)


@dataclass
class RetryProgress:
    """Passed to the progress callback right before each wait."""

    attempt: int  # 1-based number of the retry about to happen
    max_attempts: int
    delay_seconds: float
    error: Exception


class BackoffExecutor:
    """Run a zero-argument call, retrying retryable failures with exponential delay.

    The delay before retry ``n`` (0-based) is ``min(base * 2**n, cap)``. A
    rate-limit failure carrying a reset time waits until the reset instead,
    still bounded by the cap.

    Every ``execute`` call has its own attempt budget; nothing is shared
    between calls.
    """

    def __init__(
        self,
        base_delay_ms: int = 250,
        cap_delay_ms: int = 10000,
        max_attempts: int = 5,
        on_retry: Optional[Callable[[RetryProgress], None]] = None,
        on_auth_failure: Optional[Callable[[], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        name: str = "rest",
    ):
        """
        Args:
            base_delay_ms: Delay before the first retry
            cap_delay_ms: Upper bound for any single delay
            max_attempts: Retries allowed after the initial call
            on_retry: Default progress callback, called before each wait
            on_auth_failure: De-authentication hook run when a call fails with 401
            sleep: Wait function (injected so tests never sleep)
            clock: Wall-clock source in epoch seconds, used with rate-limit reset hints
            name: Call family name, used in log lines
        """
        self.base_delay_ms = base_delay_ms
        self.cap_delay_ms = cap_delay_ms
        self.max_attempts = max_attempts
        self.on_retry = on_retry
        self.on_auth_failure = on_auth_failure
        self.sleep = sleep
        self.clock = clock
        self.name = name

    @classmethod
    def from_policy(cls, policy: BackoffPolicy, **kwargs) -> "BackoffExecutor":
        return cls(
            base_delay_ms=policy.base_delay_ms,
            cap_delay_ms=policy.cap_delay_ms,
            max_attempts=policy.max_attempts,
            **kwargs,
        )

    def compute_delay(self, attempt: int) -> float:
        """Delay in seconds before retrying after failed attempt ``attempt`` (0-based)."""
        delay_ms = min(self.base_delay_ms * (2 ** attempt), self.cap_delay_ms)
        return delay_ms / 1000

    def _delay_for(self, error: Exception, attempt: int) -> float:
        delay = self.compute_delay(attempt)
        if isinstance(error, RateLimitedError):
            wait = error.seconds_until_reset(self.clock())
            if wait is not None:
                delay = min(max(delay, wait), self.cap_delay_ms / 1000)
        return delay

    def execute(
        self,
        call: Callable[[], T],
        attempt: int = 0,
        on_retry: Optional[Callable[[RetryProgress], None]] = None,
    ) -> T:
        """Invoke ``call`` until it succeeds or fails for good.

        Args:
            call: Zero-argument, idempotent remote call
            attempt: Attempts already spent (0 for a fresh call)
            on_retry: Progress callback for this call (overrides the default)

        Returns:
            Whatever ``call`` returns, unchanged

        Raises:
            AuthFailureError: After running the de-authentication hook
            RetriesExhaustedError: When retryable failures outlast the budget
            GitHubAPIError: Any other non-retryable failure, as raised by ``call``
        """
        progress = on_retry or self.on_retry

        while True:
            try:
                return call()
            except AuthFailureError:
                logger.error(f"[{self.name}] Authentication failed - clearing stored credential")
                if self.on_auth_failure is not None:
                    self.on_auth_failure()
                raise
            except RETRYABLE_ERRORS as e:
                if attempt >= self.max_attempts:
                    logger.error(f"[{self.name}] Giving up after {attempt + 1} attempts: {e}")
                    raise RetriesExhaustedError(e, attempt + 1) from e

                delay = self._delay_for(e, attempt)
                logger.warning(
                    f"[{self.name}] Retry {attempt + 1}/{self.max_attempts} "
                    f"after {type(e).__name__}: {e} (delay {delay:.2f}s)"
                )
                if progress is not None:
                    progress(RetryProgress(
                        attempt=attempt + 1,
                        max_attempts=self.max_attempts,
                        delay_seconds=delay,
                        error=e,
                    ))
                self.sleep(delay)
                attempt += 1

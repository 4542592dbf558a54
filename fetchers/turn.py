"""Client for the turn service, which reports whose move a PR is waiting on.

Turn data is a nice-to-have enrichment: any failure is logged and
reported as "no data" instead of failing the PR list.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

import requests

from fetchers.auth import TokenProvider
from fetchers.backoff import BackoffExecutor
from fetchers.errors import GitHubAPIError, TransientError
from fetchers.github import raise_for_github_status
from models.config_models import BackoffPolicy

logger = logging.getLogger(__name__)


class TurnClient:
    """POST a PR URL to the turn service and return its verdict."""

    def __init__(
        self,
        token_provider: TokenProvider,
        url: str = "https://turn.ready-to-review.dev/v1/validate",
        policy: Optional[BackoffPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = 15.0,
    ):
        self.token_provider = token_provider
        self.url = url
        self.timeout = timeout
        self.executor = BackoffExecutor.from_policy(
            policy or BackoffPolicy(base_delay_ms=250, cap_delay_ms=5000),
            sleep=sleep,
            name="enrichment",
        )

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.token_provider.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientError(f"Network error: {e}") from e
        raise_for_github_status(response)
        return response.json()

    def validate(self, pr_url: str, updated_at: datetime, user: Optional[str] = None) -> Optional[dict[str, Any]]:
        """Ask the turn service about one PR.

        Args:
            pr_url: PR web URL (https://github.com/owner/repo/pull/123)
            updated_at: PR's last update time; the service caches on it
            user: Login of the viewing user ("" when anonymous)

        Returns:
            Response dict (contains "pr_state"), or None on any failure
        """
        payload = {
            "url": pr_url,
            "updated_at": updated_at.isoformat(),
            "user": user or "",
        }
        try:
            return self.executor.execute(lambda: self._post(payload))
        except GitHubAPIError as e:
            logger.warning(f"Turn API request failed for {pr_url}: {e}")
            return None

"""GitHub API client for the dashboard.

Every request goes through a BackoffExecutor for its call family:
- search: issue and commit search pages (small rate-limit budget)
- rest: PR details and organization membership

Responses are classified into the exceptions in ``fetchers.errors``
before the executor sees them, so retry decisions depend only on the
exception type.
"""

import logging
import time
from typing import Any, Callable, Optional

import requests

from fetchers.auth import TokenProvider
from fetchers.backoff import BackoffExecutor, RetryProgress
from fetchers.errors import (
    AuthFailureError,
    ForbiddenError,
    GitHubAPIError,
    MalformedRequestError,
    NotFoundError,
    RateLimitedError,
    TransientError,
)
from fetchers.queries import DEFAULT_PAGE_SIZE, build_search_params
from models.config_models import BackoffConfig

logger = logging.getLogger(__name__)


def _rate_limit_reset(response: requests.Response) -> Optional[int]:
    """Reset time hint from X-RateLimit-Reset or Retry-After, as epoch seconds."""
    reset_header = response.headers.get("X-RateLimit-Reset")
    if reset_header:
        try:
            return int(reset_header)
        except ValueError:
            pass
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return int(time.time()) + int(retry_after)
        except ValueError:
            pass
    return None


def is_rate_limit_response(response: requests.Response) -> bool:
    """True for 429, or a 403 with an exhausted budget or a rate-limit message."""
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    if response.headers.get("X-RateLimit-Remaining") == "0":
        return True
    return "rate limit" in (response.text or "").lower()


def raise_for_github_status(response: requests.Response) -> None:
    """Raise the taxonomy exception matching a failed response.

    Args:
        response: Response from GitHub (or the turn service)

    Raises:
        RateLimitedError: 429, or 403 with a rate-limit signal
        AuthFailureError: 401
        ForbiddenError: Any other 403
        NotFoundError: 404
        MalformedRequestError: 400 or 422
        TransientError: 5xx
        GitHubAPIError: Any other non-success status
    """
    status = response.status_code
    if status < 400:
        return

    snippet = (response.text or "")[:200]

    if is_rate_limit_response(response):
        raise RateLimitedError(
            f"Rate limited ({status})",
            status_code=status,
            reset_at=_rate_limit_reset(response),
        )
    if status == 401:
        raise AuthFailureError(f"Authentication error: {status} - {snippet}", status_code=status)
    if status == 403:
        raise ForbiddenError(f"Forbidden: {snippet}", status_code=status)
    if status == 404:
        raise NotFoundError(f"Not found: {response.url}", status_code=status)
    if status in (400, 422):
        raise MalformedRequestError(f"Malformed request ({status}): {snippet}", status_code=status)
    if status >= 500:
        raise TransientError(f"Server error {status}", status_code=status)
    raise GitHubAPIError(f"Unexpected status {status}: {snippet}", status_code=status)


class GitHubFetcher:
    """Fetch search pages, PR details and org membership from the GitHub API."""

    def __init__(
        self,
        token_provider: TokenProvider,
        base_url: str = "https://api.github.com",
        backoff: Optional[BackoffConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Optional[Callable[[RetryProgress], None]] = None,
        timeout: float = 30.0,
    ):
        """Initialize GitHub API client.

        Args:
            token_provider: Source of the bearer token; cleared on 401
            base_url: API base URL (GitHub Enterprise installs differ)
            backoff: Retry policies per call family
            sleep: Wait function handed to the executors
            on_retry: Progress callback for retry waits
            timeout: Per-request timeout in seconds
        """
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        policies = backoff or BackoffConfig()
        self.search_executor = BackoffExecutor.from_policy(
            policies.search,
            on_retry=on_retry,
            on_auth_failure=token_provider.clear_token,
            sleep=sleep,
            name="search",
        )
        self.rest_executor = BackoffExecutor.from_policy(
            policies.rest,
            on_retry=on_retry,
            on_auth_failure=token_provider.clear_token,
            sleep=sleep,
            name="rest",
        )

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        token = self.token_provider.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _make_github_request(self, url: str, params: Optional[dict] = None) -> Any:
        """Make one GitHub API request and return the decoded JSON body.

        Raises:
            TransientError: On network failure or 5xx
            GitHubAPIError: Any other classified failure (see raise_for_github_status)
        """
        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientError(f"Network error: {e}") from e

        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        if remaining and limit:
            logger.debug(f"Rate limit: {remaining}/{limit} remaining")

        raise_for_github_status(response)
        return response.json()

    def search_page(
        self,
        query: str,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
        sort: Optional[str] = None,
    ) -> dict[str, Any]:
        """Fetch one page of issue search results.

        Args:
            query: Search query (see fetchers.queries.build_search_query)
            page: 1-based page number
            per_page: Page size (max 100)
            sort: Optional sort field, e.g. "updated" (descending order)

        Returns:
            Response envelope: {"total_count": int, "items": [...], ...}
        """
        url = f"{self.base_url}/search/issues"
        params = build_search_params(query, page=page, per_page=per_page, sort=sort)
        logger.debug(f"Search page {page}: {query}")
        return self.search_executor.execute(lambda: self._make_github_request(url, params=params))

    def search_commits_page(
        self,
        query: str,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Fetch one page of commit search results, newest first."""
        url = f"{self.base_url}/search/commits"
        params = build_search_params(query, page=page, per_page=per_page, sort="committer-date")
        return self.search_executor.execute(lambda: self._make_github_request(url, params=params))

    def fetch_pr_details(self, owner: str, repo: str, pr_number: int) -> dict[str, Any]:
        """Fetch the full pull request object (used for additions/deletions).

        Args:
            owner: Repository owner (e.g., "facebook")
            repo: Repository name (e.g., "react")
            pr_number: Pull request number

        Returns:
            Raw pull request dictionary
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/pulls/{pr_number}"
        return self.rest_executor.execute(lambda: self._make_github_request(url))

    def fetch_user_orgs(self) -> list[str]:
        """Logins of organizations the authenticated user belongs to."""
        url = f"{self.base_url}/user/orgs"
        orgs = self.rest_executor.execute(
            lambda: self._make_github_request(url, params={"per_page": 100})
        )
        return [org["login"] for org in orgs]

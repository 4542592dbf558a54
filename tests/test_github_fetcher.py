"""Tests for the GitHub fetcher and response classification."""

from unittest.mock import Mock, patch

import pytest
import requests

from conftest import mock_response, page, raw_pr
from fetchers.auth import TokenProvider
from fetchers.errors import (
    AuthFailureError,
    ForbiddenError,
    MalformedRequestError,
    NotFoundError,
    RateLimitedError,
    RetriesExhaustedError,
    TransientError,
)
from fetchers.github import GitHubFetcher, is_rate_limit_response, raise_for_github_status


def make_fetcher(token="ghp_test_token_123", **kwargs):
    kwargs.setdefault("sleep", lambda seconds: None)
    return GitHubFetcher(TokenProvider(token), **kwargs)


class TestGitHubFetcherInit:
    """Tests for GitHubFetcher initialization."""

    def test_init_sets_headers_correctly(self):
        """Verify headers are set correctly with token."""
        fetcher = make_fetcher("ghp_test_token_123")

        assert fetcher.base_url == "https://api.github.com"
        assert fetcher.headers["Accept"] == "application/vnd.github+json"
        assert fetcher.headers["Authorization"] == "Bearer ghp_test_token_123"
        assert fetcher.headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_anonymous_requests_have_no_authorization(self):
        fetcher = make_fetcher(token=None)
        assert "Authorization" not in fetcher.headers

    def test_family_policies(self):
        fetcher = make_fetcher()
        assert fetcher.search_executor.base_delay_ms == 1000
        assert fetcher.rest_executor.base_delay_ms == 250


class TestClassification:
    """Status codes map onto the failure taxonomy."""

    @pytest.mark.parametrize("status,error", [
        (401, AuthFailureError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (422, MalformedRequestError),
        (400, MalformedRequestError),
        (500, TransientError),
        (503, TransientError),
        (429, RateLimitedError),
    ])
    def test_status_maps_to_error(self, status, error):
        with pytest.raises(error):
            raise_for_github_status(mock_response(status_code=status))

    def test_success_does_not_raise(self):
        raise_for_github_status(mock_response(status_code=200))

    def test_403_with_exhausted_budget_is_rate_limit(self):
        response = mock_response(
            status_code=403,
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"},
        )
        assert is_rate_limit_response(response)
        with pytest.raises(RateLimitedError) as exc_info:
            raise_for_github_status(response)
        assert exc_info.value.reset_at == 1700000000

    def test_403_with_rate_limit_message_is_rate_limit(self):
        response = mock_response(status_code=403, text='{"message": "API rate limit exceeded for user"}')
        assert is_rate_limit_response(response)

    def test_plain_403_is_not_rate_limit(self):
        response = mock_response(status_code=403, text='{"message": "Resource protected by SAML SSO"}')
        assert not is_rate_limit_response(response)


class TestSearchPage:
    """Tests for search_page."""

    def test_search_page_request(self):
        fetcher = make_fetcher()
        envelope = page([raw_pr(1)], total_count=1)

        with patch("requests.get", return_value=mock_response(json_data=envelope)) as mock_get:
            result = fetcher.search_page("type:pr is:open org:acme", page=2, sort="updated")

        assert result == envelope
        call_args = mock_get.call_args
        assert call_args[0][0] == "https://api.github.com/search/issues"
        assert call_args[1]["params"] == {
            "q": "type:pr is:open org:acme",
            "per_page": 100,
            "page": 2,
            "sort": "updated",
            "order": "desc",
        }
        assert call_args[1]["timeout"] == 30.0

    def test_retries_server_errors(self):
        sleeps = []
        fetcher = make_fetcher(sleep=sleeps.append)
        responses = [mock_response(status_code=502), mock_response(json_data=page([], 0))]

        with patch("requests.get", side_effect=responses) as mock_get:
            result = fetcher.search_page("type:pr")

        assert result["total_count"] == 0
        assert mock_get.call_count == 2
        assert sleeps == [1.0]

    def test_network_error_is_retried(self):
        fetcher = make_fetcher()
        side_effect = [requests.ConnectionError("reset"), mock_response(json_data=page([], 0))]

        with patch("requests.get", side_effect=side_effect) as mock_get:
            fetcher.search_page("type:pr")

        assert mock_get.call_count == 2

    def test_gives_up_after_budget(self):
        fetcher = make_fetcher()

        with patch("requests.get", return_value=mock_response(status_code=500)) as mock_get:
            with pytest.raises(RetriesExhaustedError):
                fetcher.search_page("type:pr")

        assert mock_get.call_count == 6

    def test_auth_failure_clears_token(self):
        provider = TokenProvider("ghp_revoked")
        listener = Mock()
        provider.on_clear(listener)
        fetcher = GitHubFetcher(provider, sleep=lambda seconds: None)

        with patch("requests.get", return_value=mock_response(status_code=401, text="Bad credentials")) as mock_get:
            with pytest.raises(AuthFailureError):
                fetcher.search_page("type:pr")

        assert mock_get.call_count == 1
        assert provider.get_token() is None
        listener.assert_called_once()

    def test_forbidden_keeps_token(self):
        provider = TokenProvider("ghp_valid")
        fetcher = GitHubFetcher(provider, sleep=lambda seconds: None)

        with patch("requests.get", return_value=mock_response(status_code=403, text="SSO required")):
            with pytest.raises(ForbiddenError):
                fetcher.search_page("type:pr")

        assert provider.get_token() == "ghp_valid"


class TestRestCalls:
    def test_fetch_pr_details(self):
        fetcher = make_fetcher()
        details = {"number": 7, "additions": 12, "deletions": 3}

        with patch("requests.get", return_value=mock_response(json_data=details)) as mock_get:
            result = fetcher.fetch_pr_details("acme", "widgets", 7)

        assert result == details
        assert mock_get.call_args[0][0] == "https://api.github.com/repos/acme/widgets/pulls/7"

    def test_fetch_user_orgs_returns_logins(self):
        fetcher = make_fetcher()
        orgs = [{"login": "acme"}, {"login": "globex"}]

        with patch("requests.get", return_value=mock_response(json_data=orgs)) as mock_get:
            assert fetcher.fetch_user_orgs() == ["acme", "globex"]

        assert mock_get.call_args[0][0] == "https://api.github.com/user/orgs"

    def test_search_commits_sorts_by_committer_date(self):
        fetcher = make_fetcher()

        with patch("requests.get", return_value=mock_response(json_data=page([], 0))) as mock_get:
            fetcher.search_commits_page("org:acme")

        assert mock_get.call_args[0][0] == "https://api.github.com/search/commits"
        assert mock_get.call_args[1]["params"]["sort"] == "committer-date"

    def test_custom_base_url(self):
        fetcher = make_fetcher(base_url="https://github.example.com/api/v3/")

        with patch("requests.get", return_value=mock_response(json_data=[])) as mock_get:
            fetcher.fetch_user_orgs()

        assert mock_get.call_args[0][0] == "https://github.example.com/api/v3/user/orgs"

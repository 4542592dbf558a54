"""Shared pytest fixtures and configuration."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

NOW = datetime(2025, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_env(monkeypatch, tmp_path):
    """
    Set valid test environment variables.

    Config can then be loaded during tests without requiring real credentials.
    """
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test_token_1234567890")
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test_supabase_key_1234567890")
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    return {
        "github_token": "ghp_test_token_1234567890",
        "supabase_url": "https://test-project.supabase.co",
        "supabase_key": "test_supabase_key_1234567890",
        "log_level": "DEBUG",
    }


@pytest.fixture
def invalid_env(monkeypatch):
    """
    Set up invalid environment variables for testing validation.
    """
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_your_token_here")
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_KEY", "")


def raw_pr(
    number,
    created_days_ago=1.0,
    updated_days_ago=None,
    merged_days_ago=None,
    login="octocat",
    user_type="User",
    repo="acme/widgets",
    title=None,
    body=None,
    labels=(),
    comments=0,
    reactions=0,
    **extra,
):
    """Raw issue-search result for a pull request, relative to NOW."""
    created = NOW - timedelta(days=created_days_ago)
    updated = NOW - timedelta(days=updated_days_ago if updated_days_ago is not None else created_days_ago)
    data = {
        "id": 1000 + number,
        "number": number,
        "title": title if title is not None else f"PR {number}",
        "body": body,
        "user": {"login": login, "type": user_type},
        "html_url": f"https://github.com/{repo}/pull/{number}",
        "repository_url": f"https://api.github.com/repos/{repo}",
        "created_at": created.isoformat(),
        "updated_at": updated.isoformat(),
        "labels": [{"name": name} for name in labels],
        "comments": comments,
        "reactions": {"total_count": reactions},
        "pull_request": {
            "merged_at": (NOW - timedelta(days=merged_days_ago)).isoformat() if merged_days_ago is not None else None
        },
    }
    data.update(extra)
    return data


def raw_commit(sha, message="Update docs", login="octocat", repo="acme/widgets", days_ago=1.0):
    """Raw commit-search result, relative to NOW."""
    date = (NOW - timedelta(days=days_ago)).isoformat()
    return {
        "sha": sha,
        "html_url": f"https://github.com/{repo}/commit/{sha}",
        "author": {"login": login, "type": "User"},
        "commit": {
            "message": message,
            "author": {"name": login, "date": date},
            "committer": {"name": login, "date": date},
        },
        "repository": {"full_name": repo},
    }


def page(items, total_count):
    """Search response envelope."""
    return {"total_count": total_count, "incomplete_results": False, "items": items}


def mock_response(status_code=200, json_data=None, headers=None, text=""):
    """Mock requests.Response with the attributes the fetchers read."""
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    response.url = "https://api.github.com/test"
    response.json.return_value = json_data if json_data is not None else {}
    return response


@pytest.fixture
def now():
    return NOW

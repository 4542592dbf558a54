"""Tests for bot account classification."""

import pytest

from metrics.bots import is_bot


@pytest.mark.parametrize("login", [
    "renovate[bot]",
    "github-actions[bot]",
    "release-bot",
    "k8s-ci-robot",
    "dependabot-preview",
    "Dependabot[bot]",
])
def test_bot_logins(login):
    assert is_bot(login)


@pytest.mark.parametrize("login", ["renovate", "octocat", "robotics-lab", "bottle"])
def test_human_logins(login):
    assert not is_bot(login)


def test_account_type_wins():
    assert is_bot("plain-name", "Bot")
    assert not is_bot("plain-name", "User")

"""Tests for configuration loading and validation."""

import pytest
from pydantic import ValidationError

from models.config_models import BackoffPolicy, CacheConfig, Config, CredentialsConfig
from utils.config_loader import load_config


class TestCredentialsConfig:
    """Test CredentialsConfig validation."""

    def test_valid_credentials(self):
        """Test that valid credentials pass validation."""
        creds = CredentialsConfig(
            github_token="ghp_valid_token",
            supabase_url="https://myproject.supabase.co",
            supabase_key="valid_key_here",
        )
        assert creds.github_token == "ghp_valid_token"
        assert creds.supabase_url == "https://myproject.supabase.co"
        assert creds.supabase_key == "valid_key_here"

    def test_all_credentials_optional(self):
        """Anonymous search with the memory cache needs no credentials."""
        creds = CredentialsConfig()
        assert creds.github_token is None
        assert creds.supabase_url is None

    def test_empty_strings_become_none(self):
        creds = CredentialsConfig(github_token="", supabase_url="", supabase_key="")
        assert creds.github_token is None
        assert creds.supabase_url is None
        assert creds.supabase_key is None

    def test_rejects_placeholder_github_token(self):
        """Test that placeholder GitHub token is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CredentialsConfig(github_token="ghp_your_token_here")
        assert "GitHub token must be set" in str(exc_info.value)

    def test_rejects_placeholder_supabase_url(self):
        """Test that placeholder Supabase URL is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CredentialsConfig(supabase_url="https://your-project.supabase.co")
        assert "Supabase URL must be set" in str(exc_info.value)

    def test_rejects_non_https_supabase_url(self):
        """Test that non-HTTPS Supabase URL is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CredentialsConfig(supabase_url="http://myproject.supabase.co")
        assert "must start with https://" in str(exc_info.value)


class TestBackoffPolicy:
    def test_defaults_per_family(self):
        config = Config(credentials=CredentialsConfig())
        assert config.backoff.search.base_delay_ms == 1000
        assert config.backoff.rest.base_delay_ms == 250
        assert config.backoff.enrichment.cap_delay_ms == 5000
        assert config.backoff.search.max_attempts == 5

    def test_cap_below_base_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            BackoffPolicy(base_delay_ms=1000, cap_delay_ms=500)
        assert "cap_delay_ms must be >= base_delay_ms" in str(exc_info.value)


class TestConfig:
    """Test main Config model."""

    def test_defaults(self):
        config = Config(credentials=CredentialsConfig())
        assert config.log_level == "INFO"
        assert config.cache.backend == "memory"
        assert config.stats_window_days == 10
        assert config.changelog_window_days == 7
        assert config.leaderboard_window_days == 10

    def test_log_level_case_insensitive(self):
        """Test that log level is normalized to uppercase."""
        config = Config(credentials=CredentialsConfig(), log_level="debug")
        assert config.log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        """Test that invalid log level is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Config(credentials=CredentialsConfig(), log_level="INVALID")
        assert "Log level must be one of" in str(exc_info.value)

    def test_api_url_trailing_slash_stripped(self):
        config = Config(credentials=CredentialsConfig(), github_api_url="https://ghe.example.com/api/v3/")
        assert config.github_api_url == "https://ghe.example.com/api/v3"

    def test_supabase_backend_requires_credentials(self):
        with pytest.raises(ValidationError) as exc_info:
            Config(credentials=CredentialsConfig(), cache=CacheConfig(backend="supabase"))
        assert "CACHE_BACKEND=supabase requires" in str(exc_info.value)

    def test_supabase_backend_with_credentials(self):
        config = Config(
            credentials=CredentialsConfig(
                supabase_url="https://myproject.supabase.co",
                supabase_key="valid_key",
            ),
            cache=CacheConfig(backend="supabase"),
        )
        assert config.cache.backend == "supabase"


class TestConfigLoader:
    """Test config_loader.load_config() function."""

    def test_load_valid_config(self, test_env):
        """Test loading valid configuration from environment."""
        config = load_config()

        assert config.credentials.github_token == test_env["github_token"]
        assert config.credentials.supabase_url == test_env["supabase_url"]
        assert config.credentials.supabase_key == test_env["supabase_key"]
        assert config.log_level == test_env["log_level"]
        assert config.cache.backend == "memory"

    def test_cache_entry_budget_from_env(self, test_env, monkeypatch):
        monkeypatch.setenv("CACHE_MAX_ENTRY_BYTES", "4096")
        config = load_config()
        assert config.cache.max_entry_bytes == 4096

    def test_load_config_with_placeholder_token(self, invalid_env):
        """Test that loading config with a placeholder token fails gracefully."""
        with pytest.raises(SystemExit) as exc_info:
            load_config()
        assert exc_info.value.code == 1

    def test_unknown_cache_backend(self, test_env, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "redis")
        with pytest.raises(SystemExit):
            load_config()

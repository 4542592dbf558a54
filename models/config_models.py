"""Configuration models for validation using Pydantic."""

from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class CredentialsConfig(BaseModel):
    """API credentials loaded from environment variables."""

    # GitHub token is optional: anonymous search works but is heavily rate-limited
    github_token: Optional[str] = Field(None, description="GitHub personal access token or OAuth token")

    # Supabase (only required for the supabase cache backend)
    supabase_url: Optional[str] = Field(None, description="Supabase project URL")
    supabase_key: Optional[str] = Field(None, description="Supabase API key")
    database_url: Optional[str] = Field(None, description="PostgreSQL database URL (optional, for schema setup)")

    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: Optional[str]) -> Optional[str]:
        """Reject the placeholder token shipped in .env.example."""
        if v is None or v == "":
            return None
        if v == "ghp_your_token_here":
            raise ValueError("GitHub token must be set in .env file (placeholder found)")
        return v

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Supabase URL format."""
        if v is None or v == "":
            return None
        if v == "https://your-project.supabase.co":
            raise ValueError("Supabase URL must be set in .env file")
        if not v.startswith("https://"):
            raise ValueError("Supabase URL must start with https://")
        return v

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: Optional[str]) -> Optional[str]:
        """Validate Supabase key is not the placeholder."""
        if v is None or v == "":
            return None
        if v == "your_supabase_anon_key_here":
            raise ValueError("Supabase key must be set in .env file")
        return v


class BackoffPolicy(BaseModel):
    """Retry policy for one family of remote calls."""

    base_delay_ms: int = Field(..., gt=0, description="Delay before the first retry")
    cap_delay_ms: int = Field(..., gt=0, description="Upper bound on any single delay")
    max_attempts: int = Field(default=5, ge=0, description="Retries allowed after the first call")

    @model_validator(mode='after')
    def validate_cap_not_below_base(self):
        """The cap must be able to hold at least the base delay."""
        if self.cap_delay_ms < self.base_delay_ms:
            raise ValueError("cap_delay_ms must be >= base_delay_ms")
        return self


class BackoffConfig(BaseModel):
    """Backoff policies per call family.

    The search endpoint has a much smaller rate-limit budget than the
    rest of the REST API, so it starts backing off from a longer base.
    """

    search: BackoffPolicy = BackoffPolicy(base_delay_ms=1000, cap_delay_ms=10000)
    rest: BackoffPolicy = BackoffPolicy(base_delay_ms=250, cap_delay_ms=10000)
    enrichment: BackoffPolicy = BackoffPolicy(base_delay_ms=250, cap_delay_ms=5000)


class CacheConfig(BaseModel):
    """Cache storage settings."""

    backend: Literal["memory", "supabase"] = Field(default="memory", description="Storage medium for cache entries")
    max_entry_bytes: Optional[int] = Field(
        None, gt=0, description="Per-entry size budget; entries above it are not stored"
    )
    table_name: str = Field(default="cache_entries", description="Supabase table holding cache entries")


class Config(BaseModel):
    """Application configuration."""

    credentials: CredentialsConfig
    github_api_url: str = Field(default="https://api.github.com", description="GitHub REST API base URL")
    turn_api_url: str = Field(
        default="https://turn.ready-to-review.dev/v1/validate",
        description="PR turn/enrichment service endpoint"
    )
    cache: CacheConfig = CacheConfig()
    backoff: BackoffConfig = BackoffConfig()
    stats_window_days: int = Field(default=10, gt=0, description="Stale/merged window for org stats")
    changelog_window_days: int = Field(default=7, gt=0, description="Merged window for the changelog")
    leaderboard_window_days: int = Field(default=10, gt=0, description="Merged window for the leaderboard")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode='after')
    def validate_supabase_backend_credentials(self):
        """Ensure Supabase credentials exist when the supabase cache backend is selected."""
        if self.cache.backend == "supabase":
            if not self.credentials.supabase_url or not self.credentials.supabase_key:
                raise ValueError(
                    "CACHE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY. "
                    "Set both in your .env file or use CACHE_BACKEND=memory."
                )
        return self

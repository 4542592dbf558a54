"""Data models for the PR dashboard stats engine."""

from models.config_models import (
    BackoffConfig,
    BackoffPolicy,
    CacheConfig,
    Config,
    CredentialsConfig,
)
from models.data_models import (
    AggregationResult,
    CommitItem,
    HealthGrade,
    HealthRatio,
    MetricsSnapshot,
    SearchItem,
)

__all__ = [
    "BackoffConfig",
    "BackoffPolicy",
    "CacheConfig",
    "Config",
    "CredentialsConfig",
    "AggregationResult",
    "CommitItem",
    "HealthGrade",
    "HealthRatio",
    "MetricsSnapshot",
    "SearchItem",
]

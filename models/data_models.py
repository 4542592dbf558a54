"""Data models for search results and the metrics derived from them."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, computed_field

from metrics.bots import is_bot


def _repo_from_api_url(url: Optional[str]) -> Optional[str]:
    """Turn https://api.github.com/repos/owner/repo into owner/repo."""
    if not url or "/repos/" not in url:
        return None
    return url.split("/repos/", 1)[1]


class SearchItem(BaseModel):
    """One pull request returned by the issue search endpoint.

    Items are immutable once fetched. Enrichment (line counts from the PR
    details endpoint) produces a copy via ``with_enrichment`` instead of
    mutating the original.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    number: int
    title: str
    body: Optional[str] = None
    author: str
    author_type: Optional[str] = None
    html_url: Optional[str] = None
    repository: str  # e.g., "facebook/react"
    created_at: datetime
    updated_at: datetime
    merged_at: Optional[datetime] = None
    labels: tuple[str, ...] = ()
    comments: int = 0
    reactions: int = 0
    requested_reviewers: int = 0
    milestone: Optional[str] = None
    draft: bool = False
    is_bot: bool = False
    repo_archived: bool = False
    repo_disabled: bool = False

    # Enrichment (nullable - fetched separately)
    additions: Optional[int] = None
    deletions: Optional[int] = None

    @classmethod
    def from_github(cls, raw: dict[str, Any]) -> "SearchItem":
        """Build an item from a raw search API result."""
        user = raw.get("user") or {}
        login = user.get("login") or "ghost"
        repo_info = raw.get("repository") or raw.get("repo") or {}
        repository = (
            _repo_from_api_url(raw.get("repository_url"))
            or repo_info.get("full_name")
            or "unknown/unknown"
        )
        pull_request = raw.get("pull_request") or {}
        milestone = raw.get("milestone")

        return cls(
            id=raw["id"],
            number=raw["number"],
            title=raw.get("title") or "",
            body=raw.get("body"),
            author=login,
            author_type=user.get("type"),
            html_url=raw.get("html_url"),
            repository=repository,
            created_at=raw["created_at"],
            updated_at=raw.get("updated_at") or raw["created_at"],
            merged_at=pull_request.get("merged_at") or raw.get("merged_at"),
            labels=tuple(label.get("name", "") for label in raw.get("labels") or []),
            comments=raw.get("comments") or 0,
            reactions=(raw.get("reactions") or {}).get("total_count", 0),
            requested_reviewers=len(raw.get("requested_reviewers") or []),
            milestone=milestone.get("title") if isinstance(milestone, dict) else milestone,
            draft=bool(raw.get("draft", False)),
            is_bot=is_bot(login, user.get("type")),
            repo_archived=bool(repo_info.get("archived", False)),
            repo_disabled=bool(repo_info.get("disabled", False)),
        )

    @property
    def is_active_repository(self) -> bool:
        """False when the owning repository is archived or disabled."""
        return not (self.repo_archived or self.repo_disabled)

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo_name(self) -> str:
        return self.repository.split("/", 1)[-1]

    def with_enrichment(self, **fields: Any) -> "SearchItem":
        """Return a copy with enrichment fields attached (identity unchanged)."""
        return self.model_copy(update=fields)


class CommitItem(BaseModel):
    """A commit returned by the commit search endpoint (changelog direct-commit mode)."""

    model_config = ConfigDict(frozen=True)

    sha: str
    message: str
    author: str
    author_type: Optional[str] = None
    html_url: Optional[str] = None
    repository: str
    committed_at: datetime
    is_bot: bool = False

    @classmethod
    def from_github(cls, raw: dict[str, Any]) -> "CommitItem":
        """Build a commit from a raw commit search result."""
        commit = raw.get("commit") or {}
        author = raw.get("author") or {}
        git_author = commit.get("author") or {}
        committer = commit.get("committer") or {}
        login = author.get("login") or git_author.get("name") or "unknown"
        repository = (raw.get("repository") or {}).get("full_name") or "unknown/unknown"

        return cls(
            sha=raw["sha"],
            message=commit.get("message") or "",
            author=login,
            author_type=author.get("type"),
            html_url=raw.get("html_url"),
            repository=repository,
            committed_at=committer.get("date") or git_author["date"],
            is_bot=is_bot(login, author.get("type")),
        )

    @property
    def title(self) -> str:
        """First line of the commit message."""
        return self.message.split("\n", 1)[0]


class AggregationResult(BaseModel):
    """Outcome of one aggregation cycle over a paginated search query.

    - sampled: the upstream total exceeded the exhaustive-fetch threshold,
      so only a spread of pages was fetched
    - partial: a page fetch failed after retries and pagination stopped
      early; ``items`` holds whatever was fetched before the failure

    Both cases mean ``items`` is a subset of the population, which is what
    ``extrapolated`` reports to the metrics code.
    """

    items: list[SearchItem] = []
    total_count: int = 0
    sampled: bool = False
    partial: bool = False
    pages_fetched: list[int] = []
    error: Optional[str] = None

    @computed_field
    @property
    def sample_size(self) -> int:
        return len(self.items)

    @property
    def extrapolated(self) -> bool:
        return self.sampled or self.partial


class HealthGrade(str, Enum):
    """Health bands for the merged-to-stale ratio."""

    CRITICAL = "critical"   # ratio < 1
    POOR = "poor"           # 1 <= ratio < 2
    FAIR = "fair"           # 2 <= ratio < 3
    GOOD = "good"           # 3 <= ratio < 4
    EXCELLENT = "excellent" # ratio >= 4 (or unbounded)

    @property
    def label(self) -> str:
        return GRADE_LABELS[self]


GRADE_LABELS = {
    HealthGrade.CRITICAL: "Critical",
    HealthGrade.POOR: "Needs Attention",
    HealthGrade.FAIR: "Fair",
    HealthGrade.GOOD: "Healthy",
    HealthGrade.EXCELLENT: "Excellent",
}


class HealthRatio(BaseModel):
    """Merged-in-window divided by stale count.

    ``kind`` separates the two boundary cases from a finite ratio:
    "infinite" when nothing is stale but something merged, "undefined"
    when both counts are zero.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["finite", "infinite", "undefined"]
    value: Optional[float] = None
    label: str  # "2.0:1", "∞:1" or "-"
    grade: Optional[HealthGrade] = None


class MetricsSnapshot(BaseModel):
    """Derived, read-only aggregate for one org (or user) metrics cycle."""

    model_config = ConfigDict(frozen=True)

    open_count: int
    stale_count: int
    stale_extrapolated: bool = False
    merged_in_window: int
    average_open_age_days: Optional[float] = None
    average_cycle_time_days: Optional[float] = None
    health: HealthRatio
    window_start: datetime
    computed_at: datetime

"""Search query construction for the GitHub issue search endpoint.

Queries are space-separated qualifiers (logical AND), always in this order:

    type:pr is:<state> org:<org> author:<user> involves:<user> user:<user>
    merged:>=<date> updated:<<date> archived:false

Example:
    >>> build_search_query(state="merged", org="acme", merged_since=date(2025, 1, 1))
    'type:pr is:merged org:acme merged:>=2025-01-01'
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Literal, Optional, Union
from urllib.parse import quote

DEFAULT_PAGE_SIZE = 100
WEB_SEARCH_URL = "https://github.com/search"

DateLike = Union[date, datetime, str]


def _iso_date(value: DateLike) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date().isoformat()
    return value.isoformat()


def window_start(days: int, now: Optional[datetime] = None) -> datetime:
    """Start of a trailing window of ``days`` days ending at ``now`` (UTC)."""
    current = now or datetime.now(timezone.utc)
    return current - timedelta(days=days)


def build_search_query(
    state: Optional[Literal["open", "merged", "closed"]] = None,
    org: Optional[str] = None,
    author: Optional[str] = None,
    involves: Optional[str] = None,
    user: Optional[str] = None,
    merged_since: Optional[DateLike] = None,
    updated_before: Optional[DateLike] = None,
    exclude_archived: bool = False,
) -> str:
    """Build a pull request search query string.

    Args:
        state: "open", "merged" or "closed"
        org: Restrict to repositories owned by this organization
        author: Restrict to PRs opened by this user
        involves: PRs the user authored, was assigned, mentioned or commented on
        user: Restrict to repositories owned by this user
        merged_since: Only PRs merged on or after this date
        updated_before: Only PRs last updated before this date
        exclude_archived: Append archived:false

    Returns:
        Query string (not URL-encoded)
    """
    parts = ["type:pr"]
    if state:
        parts.append(f"is:{state}")
    if org:
        parts.append(f"org:{org}")
    if author:
        parts.append(f"author:{author}")
    if involves:
        parts.append(f"involves:{involves}")
    if user:
        parts.append(f"user:{user}")
    if merged_since is not None:
        parts.append(f"merged:>={_iso_date(merged_since)}")
    if updated_before is not None:
        parts.append(f"updated:<{_iso_date(updated_before)}")
    if exclude_archived:
        parts.append("archived:false")
    return " ".join(parts)


def build_commit_query(
    org: Optional[str] = None,
    author: Optional[str] = None,
    committed_since: Optional[DateLike] = None,
) -> str:
    """Build a commit search query (changelog direct-commit mode)."""
    parts = []
    if org:
        parts.append(f"org:{org}")
    if author:
        parts.append(f"author:{author}")
    if committed_since is not None:
        parts.append(f"committer-date:>={_iso_date(committed_since)}")
    return " ".join(parts)


def build_search_params(
    query: str,
    page: int = 1,
    per_page: int = DEFAULT_PAGE_SIZE,
    sort: Optional[str] = None,
) -> dict[str, Any]:
    """Request parameters for one search page.

    When ``sort`` is given, results are ordered by it, descending.
    """
    params: dict[str, Any] = {"q": query, "per_page": per_page, "page": page}
    if sort:
        params["sort"] = sort
        params["order"] = "desc"
    return params


def web_search_url(query: str) -> str:
    """Link to the same query in GitHub's web search UI."""
    return f"{WEB_SEARCH_URL}?q={quote(query, safe='')}&type=pullrequests"

"""Pure builders that turn cached items into the payloads features return.

Nothing here touches the network or the cache, so the bot toggle and
re-ranking can be applied to cached data without refetching.
"""

from collections import Counter
from datetime import datetime
from typing import Any, Iterable, Optional

from metrics.scoring import ImportanceScorer
from models.data_models import CommitItem, SearchItem

LEADERBOARD_SIZE = 10


def build_changelog(
    prs: Iterable[SearchItem],
    commits: Iterable[CommitItem] = (),
    commits_fetch_failed: bool = False,
    include_bots: bool = True,
    scorer: Optional[ImportanceScorer] = None,
) -> dict[str, Any]:
    """
    Group merged PRs by repository and rank everything by importance.

    Projects are ordered by the sum of their PR scores. PRs within a
    project, and the direct commits, are ordered by score then by number.

    Args:
        prs: Merged PRs in the changelog window
        commits: Direct commits in the window
        commits_fetch_failed: Whether the commit search failed
        include_bots: Keep PRs and commits authored by bots
        scorer: ImportanceScorer (default: a new one)

    Returns:
        Dict with "projects", "commits", "commitsFetchFailed" and "summary"
    """
    scorer = scorer or ImportanceScorer()
    kept = [pr for pr in prs if include_bots or not pr.is_bot]

    grouped: dict[str, list[SearchItem]] = {}
    for pr in kept:
        grouped.setdefault(pr.repository, []).append(pr)

    projects = []
    for full_name, repo_prs in grouped.items():
        ranked = scorer.rank(repo_prs)
        projects.append({
            "name": full_name.split("/", 1)[-1],
            "full_name": full_name,
            "url": f"https://github.com/{full_name}",
            "total_score": sum(scorer.score(pr) for pr in repo_prs),
            "contributors": sorted({pr.author for pr in repo_prs}),
            "prs": [
                {
                    "number": pr.number,
                    "title": pr.title,
                    "html_url": pr.html_url,
                    "author": pr.author,
                    "score": scorer.score(pr),
                }
                for pr in ranked
            ],
        })
    projects.sort(key=lambda project: project["total_score"], reverse=True)

    kept_commits = [c for c in commits if include_bots or not c.is_bot]
    commit_rows = [
        {
            "sha": commit.sha,
            "title": commit.title,
            "html_url": commit.html_url,
            "author": commit.author,
            "repository": commit.repository,
            "score": scorer.score(commit),
        }
        for commit in scorer.rank(kept_commits)
    ]

    return {
        "projects": projects,
        "commits": commit_rows,
        "commitsFetchFailed": commits_fetch_failed,
        "summary": {
            "total_prs": len(kept),
            "active_projects": len(projects),
            "contributors": len({pr.author for pr in kept}),
        },
    }


def build_leaderboard(merged_prs: Iterable[SearchItem], size: int = LEADERBOARD_SIZE) -> dict[str, Any]:
    """
    Rank human authors by merged PR count.

    Bots never appear on the leaderboard and are not counted as
    contributors. Equal counts keep first-seen order.

    Returns:
        Dict with "leaders" (login, count), "total_contributors" and "total_prs"
    """
    items = list(merged_prs)
    counts = Counter(item.author for item in items if not item.is_bot)
    leaders = sorted(counts.items(), key=lambda pair: pair[1], reverse=True)[:size]
    return {
        "leaders": [{"login": login, "count": count} for login, count in leaders],
        "total_contributors": len(counts),
        "total_prs": len(items),
    }


def dedupe_by_id(*result_sets: Iterable[SearchItem]) -> list[SearchItem]:
    """Union of several item lists, keeping the first occurrence of each id."""
    seen = set()
    unique = []
    for items in result_sets:
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            unique.append(item)
    return unique


def split_incoming_outgoing(
    items: Iterable[SearchItem], username: str
) -> tuple[list[SearchItem], list[SearchItem]]:
    """Outgoing PRs are authored by ``username``; everything else is incoming."""
    incoming, outgoing = [], []
    for item in items:
        if item.author.lower() == username.lower():
            outgoing.append(item)
        else:
            incoming.append(item)
    return incoming, outgoing


def age_days(item: SearchItem, now: datetime) -> int:
    """Whole days since the PR was opened."""
    return int((now - item.created_at).total_seconds() // 86400)


def merge_orgs(membership: Iterable[str], items: Iterable[SearchItem] = ()) -> list[str]:
    """Sorted union of org memberships and the owners of loaded PRs."""
    orgs = set(membership)
    orgs.update(item.owner for item in items)
    return sorted(orgs)

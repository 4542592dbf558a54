"""Dashboard features: org stats, changelog, leaderboard, user PRs and orgs.

Each feature follows the same cycle:

    cache lookup -> aggregate (through the backoff executors) -> derive
    -> cache store -> result callback

A hit skips the network entirely. Independent aggregations run in a
small thread pool; cache reads and writes stay on the calling thread.

Every feature accepts a CancellationToken. Once it is cancelled, pages
stop being fetched, nothing is written to the cache, the callback is not
called, and the feature returns None.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from fetchers.aggregator import SearchAggregator
from fetchers.errors import AuthFailureError, GitHubAPIError
from fetchers.queries import (
    build_commit_query,
    build_search_query,
    web_search_url,
    window_start,
)
from metrics.deriver import derive_metrics, format_duration, merged_share
from metrics.scoring import ImportanceScorer
from models.data_models import AggregationResult, CommitItem, SearchItem
from services.context import DashboardContext
from services.reports import (
    age_days,
    build_changelog,
    build_leaderboard,
    dedupe_by_id,
    merge_orgs,
    split_incoming_outgoing,
)
from services.status_tags import status_tags
from storage.cache import (
    FAMILIES,
    changelog_key,
    leaderboard_key,
    org_stats_key,
    pr_snapshot_key,
    turn_key,
    user_orgs_key,
)
from utils.cancellation import CancellationToken, OperationCancelled

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Any], None]

CYCLE_TIME_HOURS_LIMIT = 120
ENRICHMENT_WORKERS = 4


def _dump_items(items: list) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in items]


class DashboardService:
    """Runs dashboard features against one DashboardContext."""

    def __init__(self, context: DashboardContext, scorer: Optional[ImportanceScorer] = None):
        self.context = context
        self.scorer = scorer or ImportanceScorer()

    @property
    def aggregator(self) -> SearchAggregator:
        return self.context.aggregator

    @property
    def cache(self):
        return self.context.cache

    def _finish(
        self,
        payload: Any,
        cancel_token: Optional[CancellationToken],
        on_result: Optional[ResultCallback],
        cache_key: Optional[str] = None,
    ) -> Optional[Any]:
        """Store and publish a result unless its view has been abandoned."""
        if cancel_token is not None and cancel_token.cancelled:
            logger.info("View abandoned; discarding result")
            return None
        if cache_key is not None:
            self.cache.put(cache_key, payload)
        if on_result is not None:
            on_result(payload)
        return payload

    def _aggregate_pair(
        self,
        first: dict[str, Any],
        second: dict[str, Any],
        cancel_token: Optional[CancellationToken],
    ) -> tuple[AggregationResult, AggregationResult]:
        """Run two independent aggregations concurrently and wait for both."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            first_future = pool.submit(self.aggregator.aggregate, cancel_token=cancel_token, **first)
            second_future = pool.submit(self.aggregator.aggregate, cancel_token=cancel_token, **second)
            return first_future.result(), second_future.result()

    # ------------------------------------------------------------------
    # Org stats
    # ------------------------------------------------------------------

    def org_stats(
        self,
        org: str,
        cancel_token: Optional[CancellationToken] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> Optional[dict[str, Any]]:
        """
        PR health for an organization over the stats window.

        Open and merged-in-window aggregations are issued together. When
        the open set is sampled, the stale count is extrapolated.

        Args:
            org: Organization login
            cancel_token: Abandons the cycle when cancelled
            on_result: Called with the payload once it is ready

        Returns:
            Payload dict, or None if cancelled

        Raises:
            GitHubAPIError: If the first page of either aggregation fails
        """
        key = org_stats_key(org)
        cached = self.cache.get(key)
        if cached is not None:
            return self._finish(cached, cancel_token, on_result)

        now = self.context.now()
        days = self.context.config.stats_window_days
        start = window_start(days, now)
        open_query = build_search_query(state="open", org=org)
        merged_query = build_search_query(state="merged", org=org, merged_since=start)
        stale_query = build_search_query(state="open", org=org, updated_before=start)

        try:
            open_prs, merged_prs = self._aggregate_pair(
                {"query": open_query}, {"query": merged_query}, cancel_token
            )
        except OperationCancelled:
            logger.info(f"Org stats for {org} cancelled")
            return None

        snapshot = derive_metrics(open_prs, merged_prs, start, now=now)
        merged_pct, stale_pct = merged_share(snapshot.merged_in_window, snapshot.stale_count)
        payload = {
            "org": org,
            "window_days": days,
            "metrics": snapshot.model_dump(mode="json"),
            "open_sampled": open_prs.sampled,
            "open_partial": open_prs.partial,
            "merged_share": {"merged": merged_pct, "stale": stale_pct},
            "display": {
                "health": snapshot.health.label,
                "grade": snapshot.health.grade.label if snapshot.health.grade else None,
                "average_open_age": format_duration(snapshot.average_open_age_days),
                "average_cycle_time": format_duration(
                    snapshot.average_cycle_time_days,
                    hours_limit=CYCLE_TIME_HOURS_LIMIT,
                    inclusive=True,
                ),
            },
            "links": {
                "open": web_search_url(open_query),
                "stale": web_search_url(stale_query),
                "merged": web_search_url(merged_query),
            },
        }
        return self._finish(payload, cancel_token, on_result, cache_key=key)

    # ------------------------------------------------------------------
    # Changelog
    # ------------------------------------------------------------------

    def changelog(
        self,
        org: Optional[str] = None,
        username: Optional[str] = None,
        include_bots: bool = True,
        cancel_token: Optional[CancellationToken] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Merged PRs and direct commits over the changelog window, ranked by importance.

        The cache holds the fetched items; the bot filter and ranking are
        applied afterwards, so toggling bots never refetches. A failed
        commit search is not fatal and sets ``commitsFetchFailed``.

        Args:
            org: Organization scope
            username: Author scope
            include_bots: Keep bot-authored PRs and commits
            cancel_token: Abandons the cycle when cancelled
            on_result: Called with the report once it is ready

        Returns:
            Report dict (see services.reports.build_changelog), or None if cancelled

        Raises:
            ValueError: If neither org nor username is given
        """
        if not org and not username:
            raise ValueError("Changelog needs an organization or a username")

        key = changelog_key(org, username)
        data = self.cache.get(key)
        if data is None:
            try:
                data = self._fetch_changelog(org, username, cancel_token)
            except OperationCancelled:
                logger.info(f"Changelog for {key} cancelled")
                return None
            if cancel_token is not None and cancel_token.cancelled:
                return None
            self.cache.put(key, data)

        report = build_changelog(
            [SearchItem.model_validate(raw) for raw in data["prs"]],
            [CommitItem.model_validate(raw) for raw in data["commits"]],
            commits_fetch_failed=data["commitsFetchFailed"],
            include_bots=include_bots,
            scorer=self.scorer,
        )
        report.update({"org": org, "username": username, "window_days": self.context.config.changelog_window_days})
        return self._finish(report, cancel_token, on_result)

    def _fetch_changelog(
        self,
        org: Optional[str],
        username: Optional[str],
        cancel_token: Optional[CancellationToken],
    ) -> dict[str, Any]:
        start = window_start(self.context.config.changelog_window_days, self.context.now())
        query = build_search_query(state="merged", org=org, author=username, merged_since=start)
        prs = self.aggregator.aggregate(
            query, sort="updated", cancel_token=cancel_token, allow_sampling=False
        )

        commits: list[CommitItem] = []
        commits_failed = False
        try:
            commits = self.aggregator.aggregate_commits(
                build_commit_query(org=org, author=username, committed_since=start),
                cancel_token=cancel_token,
            )
        except AuthFailureError:
            raise
        except GitHubAPIError as e:
            logger.warning(f"Commit search failed, continuing with PRs only: {e}")
            commits_failed = True

        return {
            "prs": _dump_items(prs.items),
            "commits": _dump_items(commits),
            "commitsFetchFailed": commits_failed,
        }

    # ------------------------------------------------------------------
    # Leaderboard
    # ------------------------------------------------------------------

    def leaderboard(
        self,
        org: str,
        cancel_token: Optional[CancellationToken] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> Optional[dict[str, Any]]:
        """Top human authors by PRs merged in the leaderboard window."""
        key = leaderboard_key(org)
        raw_items = self.cache.get(key)
        if raw_items is None:
            days = self.context.config.leaderboard_window_days
            start = window_start(days, self.context.now())
            query = build_search_query(state="merged", org=org, merged_since=start)
            try:
                merged = self.aggregator.aggregate(
                    query, sort="updated", cancel_token=cancel_token, allow_sampling=False
                )
            except OperationCancelled:
                logger.info(f"Leaderboard for {org} cancelled")
                return None
            if cancel_token is not None and cancel_token.cancelled:
                return None
            raw_items = _dump_items(merged.items)
            self.cache.put(key, raw_items)

        board = build_leaderboard(SearchItem.model_validate(raw) for raw in raw_items)
        board.update({"org": org, "window_days": self.context.config.leaderboard_window_days})
        return self._finish(board, cancel_token, on_result)

    # ------------------------------------------------------------------
    # User PR snapshot
    # ------------------------------------------------------------------

    def user_prs(
        self,
        username: str,
        enrich: bool = True,
        cancel_token: Optional[CancellationToken] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Open PRs involving a user, split into incoming and outgoing.

        The snapshot is the union of ``involves:<user>`` and ``user:<user>``
        searches, de-duplicated by id. Line counts and turn data are
        attached afterwards and are never cached with the snapshot.

        Args:
            username: GitHub login
            enrich: Fetch PR details and turn data for each PR
            cancel_token: Abandons the cycle when cancelled
            on_result: Called with the payload once it is ready

        Returns:
            Dict with "incoming", "outgoing" and "total_count", or None if cancelled
        """
        key = pr_snapshot_key(username)
        raw_items = self.cache.get(key)
        if raw_items is None:
            involves_query = build_search_query(state="open", involves=username, exclude_archived=True)
            owned_query = build_search_query(state="open", user=username, exclude_archived=True)
            try:
                involved, owned = self._aggregate_pair(
                    {"query": involves_query, "sort": "updated"},
                    {"query": owned_query, "sort": "updated"},
                    cancel_token,
                )
            except OperationCancelled:
                logger.info(f"PR snapshot for {username} cancelled")
                return None
            if cancel_token is not None and cancel_token.cancelled:
                return None

            items = dedupe_by_id(involved.items, owned.items)
            truncated = any(result.total_count > result.sample_size for result in (involved, owned))
            if self.context.token_provider.token_kind == "oauth" and truncated:
                logger.info("OAuth Apps may not show all PRs. Consider using a Personal Access Token.")
            raw_items = _dump_items(items)
            self.cache.put(key, raw_items)

        items = [SearchItem.model_validate(raw) for raw in raw_items]
        turn_by_id: dict[int, Optional[dict[str, Any]]] = {}
        if enrich:
            items, turn_by_id = self._enrich(items, username, cancel_token)

        now = self.context.now()
        incoming, outgoing = split_incoming_outgoing(items, username)

        def row(item: SearchItem) -> dict[str, Any]:
            data = item.model_dump(mode="json")
            data["age_days"] = age_days(item, now)
            data["status_tags"] = status_tags(item, turn_by_id.get(item.id), loaded=enrich)
            return data

        payload = {
            "username": username,
            "incoming": [row(item) for item in incoming],
            "outgoing": [row(item) for item in outgoing],
            "total_count": len(items),
        }
        return self._finish(payload, cancel_token, on_result)

    def _enrich(
        self,
        items: list[SearchItem],
        viewer: str,
        cancel_token: Optional[CancellationToken],
    ) -> tuple[list[SearchItem], dict[int, Optional[dict[str, Any]]]]:
        """Attach line counts and look up turn data, skipping failures."""
        fetcher = self.context.fetcher
        turn_by_id: dict[int, Optional[dict[str, Any]]] = {}
        missing_turn = []
        for item in items:
            cached = self.cache.get(turn_key(item.owner, item.repo_name, item.number))
            if cached is not None:
                turn_by_id[item.id] = cached
            else:
                missing_turn.append(item)

        def details(item: SearchItem) -> SearchItem:
            if cancel_token is not None and cancel_token.cancelled:
                return item
            try:
                raw = fetcher.fetch_pr_details(item.owner, item.repo_name, item.number)
            except AuthFailureError:
                raise
            except GitHubAPIError as e:
                logger.warning(f"Failed to fetch PR details for {item.html_url}: {e}")
                return item
            return item.with_enrichment(additions=raw.get("additions"), deletions=raw.get("deletions"))

        def turn(item: SearchItem) -> Optional[dict[str, Any]]:
            if cancel_token is not None and cancel_token.cancelled:
                return None
            return self.context.turn_client.validate(item.html_url, item.updated_at, viewer)

        with ThreadPoolExecutor(max_workers=ENRICHMENT_WORKERS) as pool:
            detail_futures = [pool.submit(details, item) for item in items]
            turn_futures = [(item, pool.submit(turn, item)) for item in missing_turn]
            enriched = [future.result() for future in detail_futures]
            fetched_turn = [(item, future.result()) for item, future in turn_futures]

        if cancel_token is None or not cancel_token.cancelled:
            for item, data in fetched_turn:
                turn_by_id[item.id] = data
                if data is not None:
                    self.cache.put(turn_key(item.owner, item.repo_name, item.number), data)

        return enriched, turn_by_id

    def turn_data(self, item: SearchItem, viewer: Optional[str] = None) -> Optional[dict[str, Any]]:
        """Turn service verdict for one PR (cached; failures return None and are not cached)."""
        key = turn_key(item.owner, item.repo_name, item.number)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        data = self.context.turn_client.validate(item.html_url, item.updated_at, viewer)
        if data is not None:
            self.cache.put(key, data)
        return data

    # ------------------------------------------------------------------
    # User orgs
    # ------------------------------------------------------------------

    def user_orgs(
        self,
        username: str,
        cancel_token: Optional[CancellationToken] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> Optional[list[str]]:
        """
        Organizations to offer in the org selector.

        Membership of the authenticated user (``/user/orgs``) is cached for a
        day and merged with the owners of PRs in the user's cached snapshot.
        A membership lookup that fails for lack of permission is not fatal.
        """
        key = user_orgs_key(username)
        membership = self.cache.get(key)
        if membership is None:
            try:
                membership = self.context.fetcher.fetch_user_orgs()
            except AuthFailureError:
                raise
            except GitHubAPIError as e:
                logger.info(f"Could not load user orgs (may lack permission): {e}")
                membership = []
            else:
                if cancel_token is None or not cancel_token.cancelled:
                    self.cache.put(key, membership)

        snapshot = self.cache.get(pr_snapshot_key(username)) or []
        orgs = merge_orgs(membership, [SearchItem.model_validate(raw) for raw in snapshot])
        return self._finish(orgs, cancel_token, on_result)

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def clear_cache(self, family: str) -> int:
        """
        Delete every cached entry of one family ("all" clears every family).

        Returns:
            Number of entries removed

        Raises:
            ValueError: If the family name is unknown
        """
        if family == "all":
            return sum(self.cache.clear(f.prefix) for f in FAMILIES.values())
        if family not in FAMILIES:
            raise ValueError(
                f"Unknown cache family '{family}'. Choose from: all, {', '.join(FAMILIES)}"
            )
        return self.cache.clear(FAMILIES[family].prefix)

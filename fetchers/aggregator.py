"""Paginated search aggregation over GitHub's capped search endpoint.

GitHub search returns at most 100 items per page and never more than
1000 items (10 pages) per query, whatever ``total_count`` says. The
aggregator works within those caps:

- Exhaustive path (total <= 500): fetch pages 2..N in order, stopping
  early on a short page because the upstream total can be stale.
- Sampled path (total > 500): fetch at most 5 pages spread evenly over
  the reachable range, always including the last reachable page, and
  report the result as sampled so callers extrapolate.

Pages are fetched sequentially. A page that still fails after retries
stops pagination and the items gathered so far are returned with
``partial=True``.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from fetchers.errors import AuthFailureError, GitHubAPIError
from fetchers.github import GitHubFetcher
from fetchers.queries import DEFAULT_PAGE_SIZE
from models.data_models import AggregationResult, CommitItem, SearchItem
from utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

EXHAUSTIVE_THRESHOLD = 500
SEARCH_RESULT_CAP = 1000
MAX_SAMPLED_PAGES = 5


@dataclass
class _Collected:
    items: list = field(default_factory=list)
    total_count: int = 0
    sampled: bool = False
    partial: bool = False
    pages_fetched: list[int] = field(default_factory=list)
    error: Optional[str] = None


def select_sample_pages(
    total_count: int,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: Optional[int] = None,
) -> list[int]:
    """Pick the page numbers to fetch for a sampled aggregation.

    Page 1 is always first. Up to three more pages follow at a stride of
    ``available_pages // 5``, and the last reachable page closes the list.

    Args:
        total_count: Upstream total reported by page 1
        page_size: Items per page
        max_pages: Optional extra cap on reachable pages

    Returns:
        Sorted, distinct page numbers (at most 5)

    Example:
        >>> select_sample_pages(3400)
        [1, 3, 5, 7, 10]
    """
    available = min(
        math.ceil(total_count / page_size),
        SEARCH_RESULT_CAP // page_size,
    )
    if max_pages is not None:
        available = min(available, max_pages)
    if available <= 1:
        return [1]

    stride = max(1, available // MAX_SAMPLED_PAGES)
    pages = [1]
    page = 1
    while len(pages) < MAX_SAMPLED_PAGES - 1:
        page += stride
        if page >= available:
            break
        pages.append(page)
    pages.append(available)
    return pages


class SearchAggregator:
    """Turn a paginated, capped search query into an AggregationResult."""

    def __init__(
        self,
        fetcher: GitHubFetcher,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = SEARCH_RESULT_CAP // DEFAULT_PAGE_SIZE,
        exhaustive_threshold: int = EXHAUSTIVE_THRESHOLD,
    ):
        self.fetcher = fetcher
        self.page_size = page_size
        self.max_pages = max_pages
        self.exhaustive_threshold = exhaustive_threshold

    def aggregate(
        self,
        query: str,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        sort: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
        allow_sampling: bool = True,
    ) -> AggregationResult:
        """Fetch an exhaustive or sampled subset of a PR search.

        Items from archived or disabled repositories are dropped.

        Args:
            query: Search query string
            page_size: Items per page (default: 100)
            max_pages: Cap on pages considered (default: 10, the search cap)
            sort: Optional sort field ("updated")
            cancel_token: Checked before every page after the first
            allow_sampling: False reads every reachable page instead of a
                sample (changelog and leaderboard list every item)

        Returns:
            AggregationResult

        Raises:
            GitHubAPIError: If page 1 fails, or on an auth failure on any page
            OperationCancelled: If the token is cancelled mid-cycle
        """
        page_size = page_size or self.page_size
        max_pages = max_pages or self.max_pages

        def fetch(page: int) -> dict[str, Any]:
            return self.fetcher.search_page(query, page=page, per_page=page_size, sort=sort)

        def parse(raw_items: list[dict[str, Any]]) -> list[SearchItem]:
            items = [SearchItem.from_github(raw) for raw in raw_items]
            return [item for item in items if item.is_active_repository]

        collected = self._collect(
            query, fetch, parse, page_size, max_pages, cancel_token, allow_sampling=allow_sampling
        )
        result = AggregationResult(
            items=collected.items,
            total_count=collected.total_count,
            sampled=collected.sampled,
            partial=collected.partial,
            pages_fetched=collected.pages_fetched,
            error=collected.error,
        )
        logger.info(
            f"Aggregated {result.sample_size}/{result.total_count} items for '{query}' "
            f"(pages {result.pages_fetched}"
            f"{', sampled' if result.sampled else ''}{', partial' if result.partial else ''})"
        )
        return result

    def aggregate_commits(
        self,
        query: str,
        max_pages: int = 2,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[CommitItem]:
        """Fetch commit search results (changelog direct-commit mode).

        Commit results are only shown, never extrapolated, so only the
        first ``max_pages`` pages are read.
        """
        def fetch(page: int) -> dict[str, Any]:
            return self.fetcher.search_commits_page(query, page=page, per_page=self.page_size)

        def parse(raw_items: list[dict[str, Any]]) -> list[CommitItem]:
            return [CommitItem.from_github(raw) for raw in raw_items]

        collected = self._collect(
            query, fetch, parse, self.page_size, max_pages, cancel_token, allow_sampling=False
        )
        if collected.partial:
            raise GitHubAPIError(f"Commit search incomplete: {collected.error}")
        return collected.items

    def _collect(
        self,
        query: str,
        fetch: Callable[[int], dict[str, Any]],
        parse: Callable[[list[dict[str, Any]]], list],
        page_size: int,
        max_pages: int,
        cancel_token: Optional[CancellationToken],
        allow_sampling: bool = True,
    ) -> _Collected:
        first = fetch(1)
        total_count = int(first.get("total_count") or 0)
        raw_first = first.get("items") or []
        items = parse(raw_first)
        pages_fetched = [1]

        if total_count == 0:
            return _Collected(items=items, total_count=max(total_count, len(items)), pages_fetched=pages_fetched)

        sampled = allow_sampling and total_count > self.exhaustive_threshold
        if sampled:
            remaining_pages = select_sample_pages(total_count, page_size, max_pages)[1:]
            stop_on_short_page = False
        else:
            last_page = min(math.ceil(total_count / page_size), max_pages)
            remaining_pages = list(range(2, last_page + 1))
            stop_on_short_page = True
            if len(raw_first) < page_size:
                remaining_pages = []

        partial = False
        error = None
        for page in remaining_pages:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                response = fetch(page)
            except AuthFailureError:
                raise
            except GitHubAPIError as e:
                logger.warning(
                    f"Page {page} failed for '{query}' after retries; "
                    f"returning {len(items)} items gathered so far: {e}"
                )
                partial = True
                error = str(e)
                break

            raw_items = response.get("items") or []
            items.extend(parse(raw_items))
            pages_fetched.append(page)

            if stop_on_short_page and len(raw_items) < page_size:
                logger.debug(f"Page {page} returned {len(raw_items)} items, stopping early")
                break

        return _Collected(
            items=items,
            total_count=max(total_count, len(items)),
            sampled=sampled,
            partial=partial,
            pages_fetched=pages_fetched,
            error=error,
        )

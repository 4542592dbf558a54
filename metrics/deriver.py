"""Derive PR health metrics from aggregated search results.

The open-PR aggregation may be a sample (or a partial fetch). Counts are
then extrapolated to the upstream total, while averages are taken over
the items actually fetched, since timestamps only exist for those.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from models.data_models import (
    AggregationResult,
    HealthGrade,
    HealthRatio,
    MetricsSnapshot,
    SearchItem,
)

SECONDS_PER_DAY = 86400

# Upper bounds (exclusive) of each band; anything at or above the last bound is EXCELLENT
GRADE_BANDS = (
    (1.0, HealthGrade.CRITICAL),
    (2.0, HealthGrade.POOR),
    (3.0, HealthGrade.FAIR),
    (4.0, HealthGrade.GOOD),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def grade_ratio(ratio: float) -> HealthGrade:
    """Map a finite merged-to-stale ratio onto its health band."""
    for upper, grade in GRADE_BANDS:
        if ratio < upper:
            return grade
    return HealthGrade.EXCELLENT


def compute_health_ratio(merged_in_window: int, stale_count: int) -> HealthRatio:
    """Merged-in-window divided by stale count, with the zero cases spelled out.

    - stale == 0, merged > 0: unbounded, best grade, label "∞:1"
    - stale == 0, merged == 0: no data, no grade, label "-"
    - otherwise: ratio with one decimal, e.g. "2.0:1"
    """
    if stale_count == 0:
        if merged_in_window > 0:
            return HealthRatio(kind="infinite", label="∞:1", grade=HealthGrade.EXCELLENT)
        return HealthRatio(kind="undefined", label="-")

    ratio = merged_in_window / stale_count
    return HealthRatio(
        kind="finite",
        value=ratio,
        label=f"{ratio:.1f}:1",
        grade=grade_ratio(ratio),
    )


def is_stale(item: SearchItem, window_start: datetime) -> bool:
    """An open item is stale when its last update precedes the window start."""
    return item.updated_at < window_start


def count_stale(open_prs: AggregationResult, window_start: datetime) -> tuple[int, bool]:
    """Count stale open PRs, extrapolating when the set is a sample.

    Returns:
        (stale_count, extrapolated)
    """
    stale_in_sample = sum(1 for item in open_prs.items if is_stale(item, window_start))
    if not open_prs.extrapolated:
        return stale_in_sample, False
    if open_prs.sample_size == 0:
        return 0, True

    proportion = stale_in_sample / open_prs.sample_size
    return _round_half_up(proportion * open_prs.total_count), True


def average_open_age_days(open_prs: AggregationResult, now: datetime) -> Optional[float]:
    """Mean age of the fetched open PRs, in days (None when nothing was fetched)."""
    denominator = min(open_prs.sample_size, open_prs.total_count)
    if denominator == 0:
        return None
    total_seconds = sum((now - item.created_at).total_seconds() for item in open_prs.items)
    return total_seconds / denominator / SECONDS_PER_DAY


def average_cycle_time_days(merged_prs: Iterable[SearchItem]) -> Optional[float]:
    """Mean created-to-merged time in days over items carrying a merge timestamp."""
    durations = [
        (item.merged_at - item.created_at).total_seconds()
        for item in merged_prs
        if item.merged_at is not None
    ]
    if not durations:
        return None
    return sum(durations) / len(durations) / SECONDS_PER_DAY


def derive_metrics(
    open_prs: AggregationResult,
    merged_prs: AggregationResult,
    window_start: datetime,
    now: Optional[datetime] = None,
) -> MetricsSnapshot:
    """Compute a MetricsSnapshot from the open and merged-in-window aggregations.

    Neither aggregation is modified.

    Args:
        open_prs: Aggregation of ``is:open`` PRs
        merged_prs: Aggregation of PRs merged since ``window_start``
        window_start: Start of the metrics window (timezone-aware)
        now: Reference time for ages (default: current UTC time)

    Returns:
        MetricsSnapshot
    """
    now = now or datetime.now(timezone.utc)
    stale_count, stale_extrapolated = count_stale(open_prs, window_start)
    merged_in_window = merged_prs.total_count

    return MetricsSnapshot(
        open_count=open_prs.total_count,
        stale_count=stale_count,
        stale_extrapolated=stale_extrapolated,
        merged_in_window=merged_in_window,
        average_open_age_days=average_open_age_days(open_prs, now),
        average_cycle_time_days=average_cycle_time_days(merged_prs.items),
        health=compute_health_ratio(merged_in_window, stale_count),
        window_start=window_start,
        computed_at=now,
    )


def format_duration(days: Optional[float], hours_limit: float = 24, inclusive: bool = False) -> str:
    """Render a duration as "42m", "7h" or "3d".

    Hours are used up to ``hours_limit`` hours. Open ages use 24
    (exclusive); merge times use 120 (inclusive) so a few days still read
    in hours.
    """
    if days is None:
        return "-"
    minutes = days * 24 * 60
    hours = days * 24
    if minutes < 60:
        return f"{_round_half_up(minutes)}m"
    if hours < hours_limit or (inclusive and hours == hours_limit):
        return f"{_round_half_up(hours)}h"
    return f"{_round_half_up(days)}d"


def merged_share(merged: int, stale: int) -> tuple[int, int]:
    """Percentages of merged vs stale PRs for the org pie chart (0, 0 when empty)."""
    total = merged + stale
    if total == 0:
        return 0, 0
    return _round_half_up(merged / total * 100), _round_half_up(stale / total * 100)

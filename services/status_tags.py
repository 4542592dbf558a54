"""Status tags shown on a PR card, derived from turn service data."""

from typing import Any, Optional

from models.data_models import SearchItem

LOADING = "loading"


def status_tags(item: SearchItem, turn_data: Optional[dict[str, Any]], loaded: bool = True) -> list[str]:
    """
    Derive display tags for a PR from its turn service response.

    Args:
        item: The PR
        turn_data: Turn service response (None when the lookup failed)
        loaded: False while the turn lookup has not completed yet

    Returns:
        Tags in display order, e.g. ["blocked on you", "needs-rebase",
        "merge_conflict"]. ["loading"] before the lookup completes, []
        when it failed or returned no state.
    """
    if not loaded:
        return [LOADING]
    if not turn_data or not turn_data.get("pr_state"):
        return []

    state = turn_data["pr_state"]
    tags = []

    if item.draft or state.get("mergeable_state") == "draft":
        tags.append("draft")

    for label in state.get("labels") or []:
        tags.append(f"label:{label}")

    blocked_on = state.get("blocked_on") or {}
    if blocked_on.get("you"):
        tags.append("blocked on you")
        if state.get("needs_review") and item.author in (state.get("requested_reviewers") or []):
            tags.append("needs-review")
        if state.get("tests_failing"):
            tags.extend(["needs-fixes", "tests_failing"])
        if state.get("has_merge_conflict"):
            tags.extend(["needs-rebase", "merge_conflict"])
        if state.get("changes_requested"):
            tags.extend(["needs-changes", "changes_requested"])
    elif blocked_on.get("others"):
        tags.append("blocked on others")

    approved = bool(state.get("approved"))
    checks_passing = bool(state.get("all_checks_passing"))
    if approved and checks_passing and not state.get("has_merge_conflict"):
        tags.append("ready-to-merge")
    if approved:
        tags.append("approved")
    if checks_passing:
        tags.append("all_checks_passing")

    return tags

"""Heuristic importance score for changelog ordering.

Scores are sort keys only: higher first, ties broken by the larger item
number. Nothing persists them.
"""

from typing import Iterable, Union

from metrics import scoring_rules as rules
from models.data_models import CommitItem, SearchItem

Scorable = Union[SearchItem, CommitItem]


def _keyword_delta(text: str) -> int:
    return sum(delta for pattern, delta in rules.KEYWORD_RULES if pattern.search(text))


def _dependency_delta(text: str, is_bot: bool) -> int:
    if is_bot or rules.DEPENDENCY_PATTERN.search(text):
        return rules.DEPENDENCY_OR_BOT_PENALTY
    return 0


def _label_delta(labels: Iterable[str]) -> int:
    lowered = [label.lower() for label in labels]
    delta = 0
    for substrings, rule_delta in rules.LABEL_RULES:
        if any(sub in label for label in lowered for sub in substrings):
            delta += rule_delta
    return delta


class ImportanceScorer:
    """Score pull requests (and direct commits) for changelog ordering."""

    def score(self, item: Scorable) -> int:
        """
        Compute the importance score of one item.

        PRs start from engagement (comments plus weighted reactions);
        commits carry no engagement data and start from a flat base.

        Args:
            item: SearchItem or CommitItem

        Returns:
            Integer score (may be negative)
        """
        if isinstance(item, CommitItem):
            score = rules.COMMIT_BASE_SCORE
            message = item.message.lower()
            score += _keyword_delta(message)
            score += _dependency_delta(message, item.is_bot)
            return score

        score = item.comments + rules.REACTION_WEIGHT * item.reactions
        text = f"{item.title} {item.body or ''}".lower()
        score += _keyword_delta(text)
        score += _dependency_delta(text, item.is_bot)
        score += _label_delta(item.labels)
        if item.requested_reviewers > rules.MANY_REVIEWERS_THRESHOLD:
            score += rules.MANY_REVIEWERS_BONUS
        if item.milestone:
            score += rules.MILESTONE_BONUS
        return score

    def sort_key(self, item: Scorable) -> tuple[int, int]:
        """Ascending sort key that orders by score desc, then number desc."""
        number = item.number if isinstance(item, SearchItem) else 0
        return (-self.score(item), -number)

    def rank(self, items: Iterable[Scorable]) -> list[Scorable]:
        """Return items ordered most important first."""
        return sorted(items, key=self.sort_key)

"""Importance scoring rules.

Keyword rules match whole words in the lower-cased title and body. Every
matching rule applies; rules are not first-match.
"""

import re

# (pattern, delta)
KEYWORD_RULES = [
    # Features with a conventional "feat" prefix
    (re.compile(r"\b(feat)\b"), 4),
    (re.compile(r"\b(add|new|feature|implement|introduce|create)\b"), 2),
    # Operational
    (re.compile(r"\b(mitigate|warn|error|oom)\b"), 2),
    (re.compile(r"\b(revert)\b"), 4),
    (re.compile(r"\b(breaking|major|refactor|redesign|rework|migrate|replace)\b"), 3),
    (re.compile(r"\b(security|vulnerability|cve|exploit|ghsa)\b"), 8),
    (re.compile(r"\b(performance|optimize|speed|fast|perf)\b"), 1),
    # Minor updates and fixes
    (re.compile(r"\b(fix|update|remove|tune|edit|edits|correct|patch)\b"), -1),
    # Routine maintenance
    (re.compile(r"\b(chore|bump|typo|cleanup|lint|format|tweak)\b"), -2),
    (re.compile(r"\b(test)\b"), -1),
]

# Dependency updates and automated authors share one penalty, applied once
DEPENDENCY_PATTERN = re.compile(r"\b(dependabot|dependency|dependencies|deps)\b")
DEPENDENCY_OR_BOT_PENALTY = -3

# (substrings, delta); a rule applies once if any label contains any substring
LABEL_RULES = [
    (("breaking",), 3),
    (("feature", "enhancement"), 2),
    (("bug", "critical"), 1),
    (("documentation", "docs"), -1),
]

MANY_REVIEWERS_THRESHOLD = 2
MANY_REVIEWERS_BONUS = 1
MILESTONE_BONUS = 2
REACTION_WEIGHT = 4
COMMIT_BASE_SCORE = 7

"""Scope-keyed TTL cache for aggregation output.

Each feature owns a key namespace (a prefix) with its own freshness
window. Keys are the prefix plus a scope discriminator: an org, a user,
an org/user pair, or a PR's repository and number.

Entries serialize to ``{"data": <payload>, "timestamp": <epoch ms>}``.
Expired and unparseable entries are deleted when read; nothing scans for
them proactively.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from storage.backends import StorageBackend, StorageQuotaExceeded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheFamily:
    """A feature's key namespace and freshness window."""

    name: str
    prefix: str
    ttl_seconds: int


PR_SNAPSHOT = CacheFamily("prs", "r2r_prs_", 10)
TURN = CacheFamily("turn", "r2r_turn_", 2 * 60 * 60)
CHANGELOG = CacheFamily("changelog", "changelog_cache_", 4 * 60 * 60)
LEADERBOARD = CacheFamily("leaderboard", "leaderboard_cache_", 4 * 60 * 60)
ORG_STATS = CacheFamily("org_stats", "org_stats_", 2 * 60 * 60)
USER_ORGS = CacheFamily("user_orgs", "r2r_user_orgs_", 24 * 60 * 60)

FAMILIES = {
    family.name: family
    for family in (PR_SNAPSHOT, TURN, CHANGELOG, LEADERBOARD, ORG_STATS, USER_ORGS)
}


def pr_snapshot_key(username: str) -> str:
    return f"{PR_SNAPSHOT.prefix}{username}"


def turn_key(owner: str, repo: str, number: int) -> str:
    return f"{TURN.prefix}{owner}_{repo}_{number}"


def changelog_key(org: Optional[str] = None, username: Optional[str] = None) -> str:
    if org and username:
        return f"{CHANGELOG.prefix}{org}_{username}"
    if org:
        return f"{CHANGELOG.prefix}{org}"
    if username:
        return f"{CHANGELOG.prefix}user_{username}"
    return f"{CHANGELOG.prefix}all"


def leaderboard_key(org: str) -> str:
    return f"{LEADERBOARD.prefix}{org}"


def org_stats_key(org: str, username: Optional[str] = None) -> str:
    if username:
        return f"{ORG_STATS.prefix}{org}_{username}"
    return f"{ORG_STATS.prefix}{org}"


def user_orgs_key(username: str) -> str:
    return f"{USER_ORGS.prefix}{username}"


def family_for_key(key: str) -> CacheFamily:
    """Find the family whose prefix owns a key.

    Raises:
        KeyError: If no family prefix matches
    """
    for family in FAMILIES.values():
        if key.startswith(family.prefix):
            return family
    raise KeyError(f"No cache family for key '{key}'")


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    stored_at_ms: int

    def age_seconds(self, now: float) -> float:
        return max(0.0, now - self.stored_at_ms / 1000)


class TTLCache:
    """Freshness-window cache over a string key/value storage medium.

    Used from one logical thread per session; the storage medium handles
    its own locking.
    """

    def __init__(self, storage: StorageBackend, clock: Callable[[], float] = time.time):
        """
        Args:
            storage: Storage medium (memory or Supabase)
            clock: Epoch-seconds time source (injected in tests)
        """
        self.storage = storage
        self.clock = clock

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for a key, or None on a miss.

        Expired and corrupt entries count as misses and are deleted.
        """
        family = family_for_key(key)
        raw = self.storage.get_item(key)
        if raw is None:
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            decoded = json.loads(raw)
            payload = decoded["data"]
            stored_at_ms = int(decoded["timestamp"])
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Discarding corrupt cache entry {key}: {e}")
            self.storage.remove_item(key)
            return None

        age_ms = self.clock() * 1000 - stored_at_ms
        if age_ms >= family.ttl_seconds * 1000:
            logger.debug(f"Cache expired: {key} ({age_ms / 1000:.0f}s old)")
            self.storage.remove_item(key)
            return None

        logger.debug(f"Cache hit: {key} ({age_ms / 1000:.0f}s old)")
        return CacheEntry(key=key, payload=payload, stored_at_ms=stored_at_ms)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached payload, or None on a miss."""
        entry = self.get_entry(key)
        return entry.payload if entry is not None else None

    def put(self, key: str, payload: Any) -> bool:
        """Store a JSON-serializable payload under a key.

        Serialization failures and entries over the medium's size budget
        are logged and skipped; the caller carries on without caching.

        Returns:
            True if the entry was stored
        """
        family_for_key(key)
        try:
            serialized = json.dumps({"data": payload, "timestamp": int(self.clock() * 1000)})
        except (TypeError, ValueError) as e:
            logger.warning(f"Not caching {key}: payload is not serializable ({e})")
            return False

        try:
            self.storage.set_item(key, serialized)
        except StorageQuotaExceeded as e:
            logger.warning(f"Not caching {key}: {e}")
            return False

        logger.debug(f"Cached {key} ({len(serialized)} chars)")
        return True

    def clear(self, key_prefix: str) -> int:
        """Delete every entry whose key starts with ``key_prefix``.

        Returns:
            Number of entries removed
        """
        keys = self.storage.keys(key_prefix)
        for key in keys:
            self.storage.remove_item(key)
        logger.info(f"Cleared {len(keys)} cache entries with prefix '{key_prefix}'")
        return len(keys)

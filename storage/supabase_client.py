"""
Supabase-backed storage medium for cache entries.

Lets a long-running API server keep its caches across restarts and share
them between workers. Rows live in a single table:

    cache_entries(key TEXT PRIMARY KEY, value TEXT NOT NULL, updated_at TIMESTAMPTZ)

The value column holds the serialized cache entry exactly as the TTL
cache produced it; expiry is still decided by the cache on read.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from supabase import Client, create_client

from storage.backends import StorageBackend

logger = logging.getLogger(__name__)


def like_prefix_pattern(prefix: str) -> str:
    """LIKE pattern matching keys that start with ``prefix`` literally.

    Cache prefixes contain underscores, which LIKE would otherwise treat as
    single-character wildcards.
    """
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


class SupabaseStorage(StorageBackend):
    """Client for cache entry rows in Supabase."""

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        table_name: str = "cache_entries",
        max_entry_bytes: Optional[int] = None,
    ):
        """
        Initialize Supabase storage.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key (anon/public key)
            table_name: Table holding cache entries
            max_entry_bytes: Optional per-entry size budget
        """
        self.client: Client = create_client(supabase_url, supabase_key)
        self.table_name = table_name
        self.max_entry_bytes = max_entry_bytes
        logger.info(f"Initialized SupabaseStorage for {supabase_url}")

    def get_item(self, key: str) -> Optional[str]:
        """
        Read the raw serialized entry for a key.

        Returns:
            Stored string, or None if the key is absent
        """
        try:
            result = (
                self.client.table(self.table_name)
                .select("value")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to read cache entry {key}: {e}")
            raise

        if not result.data:
            return None
        return result.data[0]["value"]

    def set_item(self, key: str, value: str) -> None:
        """
        Insert or replace the entry for a key.

        Raises:
            StorageQuotaExceeded: If the value is over the per-entry budget
            Exception: If the upsert fails
        """
        self._check_size(key, value)
        record = {
            "key": key,
            "value": value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.client.table(self.table_name).upsert(record, on_conflict="key").execute()
            logger.debug(f"Stored cache entry {key} ({len(value)} chars)")
        except Exception as e:
            logger.error(f"Failed to store cache entry {key}: {e}")
            raise

    def remove_item(self, key: str) -> None:
        try:
            self.client.table(self.table_name).delete().eq("key", key).execute()
        except Exception as e:
            logger.error(f"Failed to delete cache entry {key}: {e}")
            raise

    def keys(self, prefix: str = "") -> list[str]:
        """
        List keys starting with a prefix.

        Args:
            prefix: Key prefix ("" lists everything)

        Returns:
            Matching keys
        """
        try:
            query = self.client.table(self.table_name).select("key")
            if prefix:
                query = query.like("key", like_prefix_pattern(prefix))
            result = query.execute()
        except Exception as e:
            logger.error(f"Failed to list cache keys with prefix '{prefix}': {e}")
            raise

        return [row["key"] for row in result.data or [] if row["key"].startswith(prefix)]

"""
Tests for the Supabase storage medium.

These tests use mocking to avoid requiring a real database connection.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch

from storage.backends import StorageQuotaExceeded
from storage.supabase_client import SupabaseStorage, like_prefix_pattern


class TestSupabaseStorage:
    """Tests for cache entry reads and writes through the Supabase query chain."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mock_supabase = Mock()
        self.storage = SupabaseStorage.__new__(SupabaseStorage)
        self.storage.client = self.mock_supabase
        self.storage.table_name = "cache_entries"
        self.storage.max_entry_bytes = None

        self.mock_query = MagicMock()
        self.mock_supabase.table.return_value = self.mock_query
        for method in ("select", "eq", "limit", "like", "delete", "upsert"):
            getattr(self.mock_query, method).return_value = self.mock_query

    def test_init_creates_client(self):
        with patch("storage.supabase_client.create_client") as mock_create:
            storage = SupabaseStorage("https://test.supabase.co", "key", table_name="cache")

        mock_create.assert_called_once_with("https://test.supabase.co", "key")
        assert storage.table_name == "cache"

    def test_get_item(self):
        self.mock_query.execute.return_value = Mock(data=[{"value": '{"data": 1, "timestamp": 0}'}])

        assert self.storage.get_item("org_stats_acme") == '{"data": 1, "timestamp": 0}'
        self.mock_supabase.table.assert_called_with("cache_entries")
        self.mock_query.select.assert_called_with("value")
        self.mock_query.eq.assert_called_with("key", "org_stats_acme")

    def test_get_missing_item(self):
        self.mock_query.execute.return_value = Mock(data=[])
        assert self.storage.get_item("org_stats_acme") is None

    def test_set_item_upserts_on_key(self):
        self.storage.set_item("org_stats_acme", "value")

        record = self.mock_query.upsert.call_args[0][0]
        assert record["key"] == "org_stats_acme"
        assert record["value"] == "value"
        assert "updated_at" in record
        assert self.mock_query.upsert.call_args[1] == {"on_conflict": "key"}

    def test_set_item_over_budget(self):
        self.storage.max_entry_bytes = 3

        with pytest.raises(StorageQuotaExceeded):
            self.storage.set_item("org_stats_acme", "too long")

        self.mock_query.upsert.assert_not_called()

    def test_set_item_propagates_errors(self):
        self.mock_query.execute.side_effect = Exception("connection refused")

        with pytest.raises(Exception, match="connection refused"):
            self.storage.set_item("org_stats_acme", "value")

    def test_remove_item(self):
        self.storage.remove_item("org_stats_acme")

        self.mock_query.delete.assert_called_once()
        self.mock_query.eq.assert_called_with("key", "org_stats_acme")

    def test_keys_by_prefix(self):
        self.mock_query.execute.return_value = Mock(data=[{"key": "r2r_prs_a"}, {"key": "r2r_prs_b"}])

        assert self.storage.keys("r2r_prs_") == ["r2r_prs_a", "r2r_prs_b"]
        self.mock_query.like.assert_called_with("key", "r2r\\_prs\\_%")

    def test_keys_ignores_rows_matched_only_by_wildcards(self):
        self.mock_query.execute.return_value = Mock(data=[{"key": "org_stats_acme"}, {"key": "orgXstatsXacme"}])

        assert self.storage.keys("org_stats_") == ["org_stats_acme"]


class TestLikePrefixPattern:
    def test_escapes_wildcards(self):
        assert like_prefix_pattern("org_stats_") == "org\\_stats\\_%"
        assert like_prefix_pattern("100%") == "100\\%%"

    def test_empty_prefix_matches_everything(self):
        assert like_prefix_pattern("") == "%"

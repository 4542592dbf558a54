"""Wiring for one dashboard session.

A session owns one token, one set of API clients and one cache. The CLI
builds a context per invocation; the API server builds one per process.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from fetchers.aggregator import SearchAggregator
from fetchers.auth import TokenProvider
from fetchers.backoff import RetryProgress
from fetchers.github import GitHubFetcher
from fetchers.turn import TurnClient
from models.config_models import Config
from storage.backends import MemoryStorage, StorageBackend
from storage.cache import TTLCache

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DashboardContext:
    """Collaborators shared by every dashboard feature."""

    config: Config
    token_provider: TokenProvider
    fetcher: GitHubFetcher
    aggregator: SearchAggregator
    turn_client: TurnClient
    cache: TTLCache
    now: Callable[[], datetime] = field(default=_utc_now)


def build_storage(config: Config) -> StorageBackend:
    """Create the storage medium selected by CACHE_BACKEND."""
    if config.cache.backend == "supabase":
        # Imported here so memory-only installs never touch the supabase client
        from storage.supabase_client import SupabaseStorage

        return SupabaseStorage(
            config.credentials.supabase_url,
            config.credentials.supabase_key,
            table_name=config.cache.table_name,
            max_entry_bytes=config.cache.max_entry_bytes,
        )
    return MemoryStorage(max_entry_bytes=config.cache.max_entry_bytes)


def build_context(
    config: Config,
    storage: Optional[StorageBackend] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.time,
    on_retry: Optional[Callable[[RetryProgress], None]] = None,
) -> DashboardContext:
    """
    Build a DashboardContext from configuration.

    Args:
        config: Validated configuration
        storage: Storage medium override (default: from config.cache.backend)
        sleep: Wait function for every backoff executor
        clock: Epoch-seconds clock for the cache
        on_retry: Progress callback for retry waits (e.g. a CLI status line)

    Returns:
        DashboardContext
    """
    token_provider = TokenProvider(config.credentials.github_token)
    fetcher = GitHubFetcher(
        token_provider,
        base_url=config.github_api_url,
        backoff=config.backoff,
        sleep=sleep,
        on_retry=on_retry,
    )
    turn_client = TurnClient(
        token_provider,
        url=config.turn_api_url,
        policy=config.backoff.enrichment,
        sleep=sleep,
    )
    cache = TTLCache(storage if storage is not None else build_storage(config), clock=clock)
    logger.debug(
        f"Dashboard context ready (token: {token_provider.token_kind}, cache: {config.cache.backend})"
    )
    return DashboardContext(
        config=config,
        token_provider=token_provider,
        fetcher=fetcher,
        aggregator=SearchAggregator(fetcher),
        turn_client=turn_client,
        cache=cache,
        now=lambda: datetime.fromtimestamp(clock(), tz=timezone.utc),
    )

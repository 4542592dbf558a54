"""Storage media for cache entries.

A storage medium is a flat string-to-string key/value store, the same
shape as browser localStorage. The TTL cache serializes entries to
strings before handing them over, so media never see payload objects.
"""

import threading
from typing import Optional


class StorageQuotaExceeded(Exception):
    """The medium refused a value because it is over the per-entry budget."""


class StorageBackend:
    """Interface shared by all storage media."""

    max_entry_bytes: Optional[int] = None

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = "") -> list[str]:
        raise NotImplementedError

    def _check_size(self, key: str, value: str) -> None:
        if self.max_entry_bytes is None:
            return
        size = len(value.encode("utf-8"))
        if size > self.max_entry_bytes:
            raise StorageQuotaExceeded(
                f"Entry {key} is {size} bytes (budget {self.max_entry_bytes})"
            )


class MemoryStorage(StorageBackend):
    """Process-local storage; lives as long as the dashboard session that owns it."""

    def __init__(self, max_entry_bytes: Optional[int] = None):
        self.max_entry_bytes = max_entry_bytes
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_size(key, value)
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return [key for key in self._items if key.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._items)

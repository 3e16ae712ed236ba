"""
In-memory key/entry storage.

The store knows nothing about freshness or producers; it only holds
entries and mutates them atomically.
"""
import threading
import logging
from typing import Any, Callable, Dict, List, Optional

from .core import CacheEntry

logger = logging.getLogger("cache.store")


class CacheStore:
    """
    Thread-safe mapping from cache key to CacheEntry.

    Every read and write takes the same lock and none of them suspend, so
    the store can be shared between the event loop and the GC thread.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[CacheEntry]:
        """Look up an entry without side effects."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: Any, ttl_seconds: float, now: float) -> CacheEntry:
        """Insert or replace the entry for a key."""
        entry = CacheEntry(key=key, value=value, stored_at=now, ttl_seconds=ttl_seconds)
        with self._lock:
            self._entries[key] = entry
        return entry

    def delete(self, key: str) -> bool:
        """
        Remove an entry.

        Returns:
            True if something was removed
        """
        with self._lock:
            return self._entries.pop(key, None) is not None

    def discard(self, key: str, expected: CacheEntry) -> bool:
        """Remove an entry only if it is still the exact object given."""
        with self._lock:
            if self._entries.get(key) is expected:
                del self._entries[key]
                return True
            return False

    def delete_where(self, predicate: Callable[[str], bool]) -> int:
        """
        Remove every entry whose key matches the predicate.

        Returns:
            Number of entries removed
        """
        with self._lock:
            to_delete = [k for k in self._entries if predicate(k)]
            for key in to_delete:
                del self._entries[key]
            return len(to_delete)

    def clear(self) -> int:
        """Remove everything. Returns number of entries cleared."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def keys(self) -> List[str]:
        """Snapshot of the current keys."""
        with self._lock:
            return list(self._entries)

    def entries(self) -> List[CacheEntry]:
        """Snapshot of the current entries."""
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

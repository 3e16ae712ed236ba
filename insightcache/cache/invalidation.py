"""
Explicit invalidation of cached results.

Used when something outside the cache (logout, a user-initiated refresh,
a mutation elsewhere) makes stored values obsolete. Only data at rest is
discarded; computations already in flight are left to finish and will
repopulate their keys.
"""
import logging

from .store import CacheStore

logger = logging.getLogger("cache.invalidation")


class InvalidationManager:
    """Removes entries by key, by key pattern, or all at once."""

    def __init__(self, store: CacheStore):
        self._store = store

    def invalidate(self, cache_key: str) -> bool:
        """
        Invalidate a specific cache entry.

        Returns:
            True if entry was found and removed
        """
        removed = self._store.delete(cache_key)
        if removed:
            logger.info(f"Invalidated cache: {cache_key}")
        return removed

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Invalidate all cache entries whose key contains a substring.

        Args:
            pattern: Substring to match in cache keys

        Returns:
            Number of entries invalidated
        """
        if not pattern:
            raise ValueError("pattern must be a non-empty string; use invalidate_all()")
        count = self._store.delete_where(lambda key: pattern in key)
        if count:
            logger.info(f"Invalidated {count} entries matching '{pattern}'")
        return count

    def invalidate_prefix(self, prefix: str) -> int:
        """Invalidate all cache entries whose key starts with a prefix."""
        if not prefix:
            raise ValueError("prefix must be a non-empty string; use invalidate_all()")
        count = self._store.delete_where(lambda key: key.startswith(prefix))
        if count:
            logger.info(f"Invalidated {count} entries with prefix '{prefix}'")
        return count

    def invalidate_user(self, user_id: str) -> int:
        """Drop every entry keyed to a user, e.g. on logout."""
        return self.invalidate_prefix(f"{user_id}:")

    def invalidate_all(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries cleared
        """
        count = self._store.clear()
        logger.info(f"Cleared {count} cache entries")
        return count

"""
Core cache data structures.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from enum import Enum


class CacheSource(Enum):
    """Where a returned value came from."""
    FRESH = "fresh"       # Within TTL
    STALE = "stale"       # Refresh failed, last good value served
    UPSTREAM = "upstream" # Computed by a producer


@dataclass(frozen=True)
class CacheEntry:
    """
    One stored result.

    Entries are immutable; a recomputation replaces the whole object so the
    value and its timestamp always travel together.
    """
    key: str
    value: Any
    stored_at: float
    ttl_seconds: float

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl_seconds

    def age_seconds(self, now: float) -> float:
        """Seconds since the value was stored."""
        return now - self.stored_at


@dataclass
class CacheMeta:
    """
    Metadata about a cache access, included in API responses.
    """
    last_updated: str  # ISO timestamp of the stored value
    cache_source: str  # "fresh", "stale", or "upstream"
    ttl_seconds: Optional[float] = None
    age_seconds: Optional[float] = None

    @property
    def is_stale(self) -> bool:
        return self.cache_source == CacheSource.STALE.value

    @classmethod
    def for_entry(cls, entry: CacheEntry, source: CacheSource, now: float) -> "CacheMeta":
        return cls(
            last_updated=_isoformat(entry.stored_at),
            cache_source=source.value,
            ttl_seconds=entry.ttl_seconds,
            age_seconds=max(0.0, entry.age_seconds(now)),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        return {
            "lastUpdated": self.last_updated,
            "cacheSource": self.cache_source,
            "isStale": self.is_stale,
            "ttl": self.ttl_seconds,
            "age": round(self.age_seconds, 1) if self.age_seconds is not None else None,
        }


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")

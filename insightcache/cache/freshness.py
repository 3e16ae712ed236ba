"""
Freshness rules and TTL configuration for AI feature results.
"""
from enum import Enum
from typing import Dict, Optional

from .core import CacheEntry


DEFAULT_TTL_SECONDS = 30 * 60  # 30 minutes


class FeatureCategory(Enum):
    """Remote computations whose results are cached."""
    BODY_PATTERNS = "patterns"
    IMMEDIATE_PREDICTIONS = "predictions:immediate"
    SEASONAL_PREDICTIONS = "predictions:seasonal"
    LONGTERM_PREDICTIONS = "predictions:longterm"
    PATTERN_QUESTIONS = "questions"
    PHOTO_ANALYSIS = "photo"
    HEALTH_SCORE = "health-score"
    DASHBOARD = "dashboard"


# TTL configuration by feature (in seconds)
TTL_CONFIG: Dict[FeatureCategory, float] = {
    FeatureCategory.BODY_PATTERNS: 1800,          # 30 minutes
    FeatureCategory.IMMEDIATE_PREDICTIONS: 1800,  # 30 minutes
    FeatureCategory.SEASONAL_PREDICTIONS: 21600,  # 6 hours
    FeatureCategory.LONGTERM_PREDICTIONS: 86400,  # 1 day
    FeatureCategory.PATTERN_QUESTIONS: 3600,      # 1 hour
    FeatureCategory.PHOTO_ANALYSIS: 300,          # 5 minutes, scans finish asynchronously
    FeatureCategory.HEALTH_SCORE: 3600,
    FeatureCategory.DASHBOARD: 300,
}


def get_ttl_for_feature(feature: FeatureCategory) -> float:
    """Get the configured TTL for a feature, or the default."""
    return TTL_CONFIG.get(feature, DEFAULT_TTL_SECONDS)


def make_cache_key(user_id: str, feature, *parts) -> str:
    """
    Build a composite key of user identity and feature name.

    Example:
        make_cache_key("u1", FeatureCategory.IMMEDIATE_PREDICTIONS)
        -> "u1:predictions:immediate"
    """
    name = feature.value if isinstance(feature, FeatureCategory) else str(feature)
    extra = [str(p) for p in parts if p is not None]
    return ":".join([user_id, name, *extra])


class FreshnessPolicy:
    """
    Decides whether an entry may be served without recomputation.

    A TTL requested by a caller applies to that caller's check only;
    the entry keeps the TTL it was stored with.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS):
        self.default_ttl = self.validate_ttl(default_ttl)

    @staticmethod
    def validate_ttl(ttl: Optional[float]) -> Optional[float]:
        """Reject a non-positive TTL; None passes through."""
        if ttl is not None and ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        return ttl

    def resolve_ttl(self, ttl: Optional[float] = None) -> float:
        """TTL to store with a new entry."""
        return ttl if ttl is not None else self.default_ttl

    def effective_ttl(self, entry: CacheEntry, requested_ttl: Optional[float] = None) -> float:
        return requested_ttl if requested_ttl is not None else entry.ttl_seconds

    def is_fresh(
        self,
        entry: CacheEntry,
        now: float,
        requested_ttl: Optional[float] = None,
    ) -> bool:
        """Check if the entry's age is within the effective TTL."""
        return entry.age_seconds(now) < self.effective_ttl(entry, requested_ttl)

    def is_expired(self, entry: CacheEntry, now: float) -> bool:
        """Check if the entry has outlived its own TTL and may be collected."""
        return entry.age_seconds(now) > self.effective_ttl(entry)

    def remaining_ttl(self, entry: CacheEntry, now: float) -> float:
        """Seconds of freshness left, floored at zero."""
        return max(0.0, self.effective_ttl(entry) - entry.age_seconds(now))

"""
In-memory result cache with TTL freshness, request coalescing,
stale-on-error fallback and background garbage collection.
"""
from .core import CacheEntry, CacheMeta, CacheSource
from .store import CacheStore
from .freshness import (
    DEFAULT_TTL_SECONDS,
    TTL_CONFIG,
    FeatureCategory,
    FreshnessPolicy,
    get_ttl_for_feature,
    make_cache_key,
)
from .errors import CacheError, ProducerFailure, NotFoundNoFallback, ProducerTimeout
from .coalescer import RequestCoalescer
from .invalidation import InvalidationManager
from .janitor import GCJanitor
from .manager import ResultCache

__all__ = [
    # Core types
    "CacheEntry",
    "CacheMeta",
    "CacheSource",
    "CacheStore",
    # Freshness
    "DEFAULT_TTL_SECONDS",
    "TTL_CONFIG",
    "FeatureCategory",
    "FreshnessPolicy",
    "get_ttl_for_feature",
    "make_cache_key",
    # Errors
    "CacheError",
    "ProducerFailure",
    "NotFoundNoFallback",
    "ProducerTimeout",
    # Coalescing
    "RequestCoalescer",
    # Maintenance
    "InvalidationManager",
    "GCJanitor",
    # Manager
    "ResultCache",
]

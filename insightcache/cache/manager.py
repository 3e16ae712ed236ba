"""
Main cache orchestration: freshness checks, single-flight computation,
stale-on-error fallback, invalidation and background GC.
"""
import asyncio
import time
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .core import CacheEntry, CacheMeta, CacheSource
from .coalescer import RequestCoalescer
from .errors import NotFoundNoFallback
from .freshness import DEFAULT_TTL_SECONDS, FreshnessPolicy
from .invalidation import InvalidationManager
from .janitor import DEFAULT_GC_INTERVAL_SECONDS, GCJanitor
from .store import CacheStore

logger = logging.getLogger("cache.manager")

Producer = Callable[[], Awaitable[Any]]


class ResultCache:
    """
    Get-or-compute cache for slow or rate-limited remote results.

    - Fresh entries are returned without suspending
    - Concurrent misses for one key share a single producer call
    - A failed refresh serves the last good value when there is one
    - Expired entries are collected by a background janitor

    Build one instance at startup, hand it to everything that needs it,
    and call shutdown() on exit.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        gc_interval: float = DEFAULT_GC_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
        store: Optional[CacheStore] = None,
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: Freshness window when neither caller nor entry sets one
            gc_interval: Seconds between background GC sweeps
            clock: Time source in seconds, injectable for tests
            store: Existing store to wrap (a new one by default)
        """
        self._clock = clock
        self.store = store if store is not None else CacheStore()
        self.policy = FreshnessPolicy(default_ttl)
        self.invalidation = InvalidationManager(self.store)
        self.janitor = GCJanitor(self.store, self.policy, interval_seconds=gc_interval, clock=clock)
        self._coalescer = RequestCoalescer(clock=clock)

        # Stats tracking
        self._stats = {
            "hits_fresh": 0,
            "misses": 0,
            "stale_fallbacks": 0,
            "failures": 0,
            "prefetches": 0,
        }

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "ResultCache":
        """Build a cache from the application settings."""
        return cls(
            default_ttl=settings.cache_default_ttl_seconds,
            gc_interval=settings.cache_gc_interval_seconds,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Get-or-compute
    # ------------------------------------------------------------------

    async def get_or_compute(
        self,
        cache_key: str,
        producer: Producer,
        ttl: Optional[float] = None,
    ) -> Any:
        """
        Return a fresh cached value or compute one.

        Args:
            cache_key: Unique cache key
            producer: No-argument coroutine function computing the value
            ttl: Freshness window for this request; also stored with the
                entry if this call ends up running the producer

        Returns:
            The cached, computed, or (after a failed refresh) stale value

        Raises:
            NotFoundNoFallback: The producer failed and nothing was cached
        """
        value, _ = await self.get_with_meta(cache_key, producer, ttl)
        return value

    async def get_with_meta(
        self,
        cache_key: str,
        producer: Producer,
        ttl: Optional[float] = None,
    ) -> Tuple[Any, CacheMeta]:
        """
        Same as get_or_compute() but also reports where the value came from.

        Returns:
            (value, cache_meta) tuple; cache_meta.is_stale is True when the
            value was served because a refresh failed
        """
        self.policy.validate_ttl(ttl)
        now = self._clock()
        entry = self.store.get(cache_key)

        if entry is not None and self.policy.is_fresh(entry, now, ttl):
            logger.debug(f"CACHE HIT (fresh): {cache_key} [age={entry.age_seconds(now):.1f}s]")
            self._stats["hits_fresh"] += 1
            return entry.value, CacheMeta.for_entry(entry, CacheSource.FRESH, now)

        if entry is None:
            logger.info(f"CACHE MISS: {cache_key}")
        else:
            logger.info(f"CACHE EXPIRED: {cache_key} [age={entry.age_seconds(now):.1f}s]")
        self._stats["misses"] += 1

        entry, source = await self._coalescer.get_or_fetch(
            cache_key,
            lambda: self._compute(cache_key, producer, ttl),
        )
        return entry.value, CacheMeta.for_entry(entry, source, self._clock())

    async def _compute(
        self,
        cache_key: str,
        producer: Producer,
        ttl: Optional[float],
    ) -> Tuple[CacheEntry, CacheSource]:
        """Run the producer once and store or fall back. Shared by all waiters."""
        try:
            value = await producer()
        except Exception as e:
            fallback = self.store.get(cache_key)
            if fallback is None:
                self._stats["failures"] += 1
                logger.warning(f"Producer failed for {cache_key}, nothing to fall back to: {e}")
                raise NotFoundNoFallback(cache_key, e) from e
            self._stats["stale_fallbacks"] += 1
            logger.warning(f"Using stale cache for {cache_key} due to producer error: {e}")
            return fallback, CacheSource.STALE

        entry = self.store.set(cache_key, value, self.policy.resolve_ttl(ttl), self._clock())
        return entry, CacheSource.UPSTREAM

    def prefetch(
        self,
        cache_key: str,
        producer: Producer,
        ttl: Optional[float] = None,
    ) -> bool:
        """
        Warm a key in the background unless it is fresh or already loading.

        Must be called from inside the running event loop. Failures are
        logged, never raised.

        Returns:
            True if a background computation was scheduled
        """
        self.policy.validate_ttl(ttl)
        entry = self.store.get(cache_key)
        if entry is not None and self.policy.is_fresh(entry, self._clock(), ttl):
            return False
        if self._coalescer.is_in_flight(cache_key):
            return False

        task = self._coalescer.join(
            cache_key,
            lambda: self._compute(cache_key, producer, ttl),
        )
        task.add_done_callback(lambda t: self._on_prefetch_done(cache_key, t))
        self._stats["prefetches"] += 1
        logger.debug(f"Prefetch scheduled: {cache_key}")
        return True

    def _on_prefetch_done(self, cache_key: str, task: "asyncio.Future[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Prefetch failed for {cache_key}: {error}")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def peek(self, cache_key: str) -> Optional[Any]:
        """Stored value for a key regardless of freshness, without computing."""
        entry = self.store.get(cache_key)
        return entry.value if entry is not None else None

    def status(self, cache_key: str) -> Dict[str, Any]:
        """Describe the cached state of a single key."""
        entry = self.store.get(cache_key)
        in_flight = self._coalescer.is_in_flight(cache_key)
        if entry is None:
            return {"key": cache_key, "cached": False, "in_flight": in_flight}

        now = self._clock()
        return {
            "key": cache_key,
            "cached": True,
            "in_flight": in_flight,
            "is_stale": not self.policy.is_fresh(entry, now),
            "age_seconds": round(entry.age_seconds(now), 1),
            "ttl_seconds": entry.ttl_seconds,
            "remaining_ttl_seconds": round(self.policy.remaining_ttl(entry, now), 1),
            "expires_at": entry.expires_at,
        }

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        entries = self.store.entries()
        coalescer_stats = self._coalescer.get_stats()

        hits = self._stats["hits_fresh"]
        total_requests = hits + self._stats["misses"]
        hit_rate = (hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "entries": len(entries),
            "hits_fresh": hits,
            "misses": self._stats["misses"],
            "coalesced": coalescer_stats["coalesced"],
            "stale_fallbacks": self._stats["stale_fallbacks"],
            "failures": self._stats["failures"],
            "prefetches": self._stats["prefetches"],
            "hit_rate_percent": round(hit_rate, 1),
            "default_ttl_seconds": self.policy.default_ttl,
            "items": [
                {
                    "key": entry.key,
                    "age_seconds": round(entry.age_seconds(now), 1),
                    "expired": self.policy.is_expired(entry, now),
                }
                for entry in entries
            ],
            "coalescer": coalescer_stats,
            "gc": {
                "running": self.janitor.is_running,
                "interval_seconds": self.janitor.interval_seconds,
                "sweeps": self.janitor.sweeps,
                "evicted": self.janitor.total_evicted,
                "last_sweep_at": self.janitor.last_sweep_at,
            },
        }

    # ------------------------------------------------------------------
    # Invalidation and lifecycle
    # ------------------------------------------------------------------

    def invalidate(self, cache_key: str) -> bool:
        return self.invalidation.invalidate(cache_key)

    def invalidate_pattern(self, pattern: str) -> int:
        return self.invalidation.invalidate_pattern(pattern)

    def invalidate_user(self, user_id: str) -> int:
        return self.invalidation.invalidate_user(user_id)

    def invalidate_all(self) -> int:
        return self.invalidation.invalidate_all()

    def start(self) -> None:
        """Start background GC."""
        self.janitor.start()

    def shutdown(self) -> None:
        """Stop background GC. In-flight computations are left to finish."""
        self.janitor.stop()

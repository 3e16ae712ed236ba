"""
Background garbage collection of expired entries.
"""
import threading
import time
import logging
from typing import Callable, Optional

from .freshness import FreshnessPolicy
from .store import CacheStore

logger = logging.getLogger("cache.janitor")

DEFAULT_GC_INTERVAL_SECONDS = 5 * 60


class GCJanitor:
    """
    Periodically evicts entries older than their own TTL.

    Runs on a daemon thread so it works whether or not an event loop is
    active. A sweep only removes the exact entry it judged expired: a key
    deleted meanwhile is skipped, and a key refreshed after the snapshot
    survives until a later sweep.
    """

    def __init__(
        self,
        store: CacheStore,
        policy: FreshnessPolicy,
        interval_seconds: float = DEFAULT_GC_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._store = store
        self._policy = policy
        self._clock = clock
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.sweeps = 0
        self.total_evicted = 0
        self.last_sweep_at: Optional[float] = None

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Evict every expired entry.

        Args:
            now: Time to judge expiry against (defaults to the clock)

        Returns:
            Number of entries evicted
        """
        if now is None:
            now = self._clock()

        evicted = 0
        for key in self._store.keys():
            entry = self._store.get(key)
            if entry is None:
                continue
            if self._policy.is_expired(entry, now) and self._store.discard(key, entry):
                evicted += 1

        self.sweeps += 1
        self.total_evicted += evicted
        self.last_sweep_at = now
        if evicted:
            logger.info(f"GC sweep evicted {evicted} expired entries ({len(self._store)} remain)")
        else:
            logger.debug("GC sweep found nothing to evict")
        return evicted

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.sweep()
            except Exception:
                logger.exception("GC sweep failed")

    def start(self) -> None:
        """Start the recurring sweep. No-op if already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="cache-gc",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"GC janitor started (interval={self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the recurring sweep and wait for the thread to exit."""
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout=timeout)
            logger.info("GC janitor stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

"""
Shared fixtures for cache tests.
"""
import asyncio

import pytest

from insightcache.cache import ResultCache


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class CountingProducer:
    """
    Async producer that records its calls.

    Each call yields the next outcome (the last one repeats). Exception
    instances are raised instead of returned.
    """

    def __init__(self, *outcomes, delay: float = 0.0):
        self._outcomes = list(outcomes) or [None]
        self.delay = delay
        self.calls = 0

    async def __call__(self):
        outcome = self._outcomes[min(self.calls, len(self._outcomes) - 1)]
        self.calls += 1
        await asyncio.sleep(self.delay)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    cache = ResultCache(default_ttl=1800, gc_interval=300, clock=clock)
    yield cache
    cache.shutdown()

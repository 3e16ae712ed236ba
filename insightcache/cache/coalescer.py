"""
Request coalescing to prevent duplicate producer calls.

When multiple concurrent requests ask for the same key, only one
computation is started and all requesters share its outcome.
"""
import asyncio
import threading
import time
import logging
from typing import Any, Awaitable, Callable, Dict
from dataclasses import dataclass

logger = logging.getLogger("cache.coalescer")


@dataclass
class InFlightRequest:
    """Tracks an in-progress computation."""
    key: str
    task: "asyncio.Future[Any]"
    started_at: float
    waiter_count: int = 0


def _consume_outcome(task: "asyncio.Future[Any]") -> None:
    # Marks the exception retrieved when every waiter has gone away.
    if not task.cancelled():
        task.exception()


class RequestCoalescer:
    """
    Ensures concurrent requests for the same key share one computation.

    Pattern:
    - First request for a key registers a task running the fetch
    - Subsequent requests for the same key await that task
    - The task unregisters itself before its result is delivered, so a
      caller resuming from it can already start a new computation
    - A waiter that is cancelled stops waiting; the task keeps running

    All waiters must run on the same event loop as the initiator.

    Usage:
        coalescer = RequestCoalescer()
        result = await coalescer.get_or_fetch(
            cache_key="u1:predictions",
            fetch_fn=lambda: call_remote(),
        )
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._in_flight: Dict[str, InFlightRequest] = {}
        self._lock = threading.Lock()
        self._stats = {"initiated": 0, "coalesced": 0}

    async def get_or_fetch(
        self,
        cache_key: str,
        fetch_fn: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Either join an existing in-flight request or initiate a new one.

        Args:
            cache_key: Unique key for this request
            fetch_fn: Coroutine function to call if we need to fetch

        Returns:
            The fetched data (shared among all concurrent callers)

        Raises:
            Exception: Any error from fetch_fn is raised in every waiter
        """
        return await asyncio.shield(self.join(cache_key, fetch_fn))

    def join(
        self,
        cache_key: str,
        fetch_fn: Callable[[], Awaitable[Any]],
    ) -> "asyncio.Future[Any]":
        """
        Return the shared task for a key, starting it if there is none.

        The task is registered before this returns. Must be called from
        inside the running event loop.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            in_flight = self._in_flight.get(cache_key)
            if in_flight is not None:
                in_flight.waiter_count += 1
                self._stats["coalesced"] += 1
                logger.debug(
                    f"Coalescing request for {cache_key} "
                    f"(waiters: {in_flight.waiter_count})"
                )
            else:
                task = loop.create_task(self._run(cache_key, fetch_fn))
                task.add_done_callback(_consume_outcome)
                in_flight = InFlightRequest(key=cache_key, task=task, started_at=self._clock())
                self._in_flight[cache_key] = in_flight
                self._stats["initiated"] += 1
                logger.debug(f"Initiating fetch for {cache_key}")

        return in_flight.task

    async def _run(self, cache_key: str, fetch_fn: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await fetch_fn()
        finally:
            with self._lock:
                self._in_flight.pop(cache_key, None)

    def is_in_flight(self, cache_key: str) -> bool:
        with self._lock:
            return cache_key in self._in_flight

    def get_stats(self) -> Dict[str, Any]:
        """Get coalescer statistics."""
        with self._lock:
            return {
                "active_requests": len(self._in_flight),
                "in_flight": [
                    {
                        "key": request.key,
                        "started_at": request.started_at,
                        "waiter_count": request.waiter_count,
                    }
                    for request in self._in_flight.values()
                ],
                "initiated": self._stats["initiated"],
                "coalesced": self._stats["coalesced"],
            }

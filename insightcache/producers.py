"""
Helpers for building well-behaved producers.

The cache never retries and never times out a producer itself. Remote
fetchers wrap their calls with these helpers so that every producer is
bounded in duration and retries transient failures with backoff.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from insightcache.cache.errors import ProducerTimeout

logger = logging.getLogger("cache.producers")

Producer = Callable[[], Awaitable[Any]]


def with_timeout(producer: Producer, seconds: float) -> Producer:
    """
    Bound a producer's duration.

    Raises:
        ProducerTimeout: If the producer has not finished after `seconds`
    """
    if seconds <= 0:
        raise ValueError("seconds must be positive")

    async def bounded() -> Any:
        try:
            return await asyncio.wait_for(producer(), timeout=seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Producer timed out after {seconds}s")
            raise ProducerTimeout(seconds)

    return bounded


def with_retry(
    producer: Producer,
    attempts: int = 3,
    max_delay: float = 30.0,
    multiplier: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Producer:
    """
    Retry a producer with exponential backoff.

    Waits 1s, 2s, 4s, ... between attempts, capped at `max_delay`, and
    re-raises the last error once `attempts` calls have failed.

    Args:
        producer: Coroutine function to call
        attempts: Total number of calls, including the first
        max_delay: Upper bound on a single wait, in seconds
        multiplier: Scale of the backoff (0 disables waiting)
        retry_on: Exception types worth retrying
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    async def retrying() -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=multiplier, max=max_delay),
            retry=retry_if_exception_type(retry_on),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await producer()

    return retrying


def guarded(
    producer: Producer,
    timeout_seconds: Optional[float] = None,
    attempts: Optional[int] = None,
    max_delay: Optional[float] = None,
) -> Producer:
    """
    Apply the configured timeout to each attempt and retry on failure.

    Unset arguments fall back to the application settings.
    """
    return with_retry(
        with_timeout(
            producer,
            timeout_seconds if timeout_seconds is not None else settings.producer_timeout_seconds,
        ),
        attempts=attempts if attempts is not None else settings.producer_retry_attempts,
        max_delay=max_delay if max_delay is not None else settings.producer_retry_max_delay_seconds,
    )

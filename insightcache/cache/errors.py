"""Cache error types."""
from typing import Optional


class CacheError(Exception):
    """Base class for result cache errors."""


class ProducerFailure(CacheError):
    """A producer raised while computing the value for a key."""

    reason = "producer failed"

    def __init__(self, key: str, original: Optional[BaseException] = None):
        self.key = key
        self.original = original
        message = f"{key}: {self.reason}"
        if original is not None:
            message += f" ({type(original).__name__}: {original})"
        super().__init__(message)


class NotFoundNoFallback(ProducerFailure):
    """A producer failed and there is no earlier value to fall back to."""

    reason = "producer failed and no cached value to fall back to"


class ProducerTimeout(CacheError, TimeoutError):
    """A producer did not finish within its time bound."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"producer did not finish within {seconds}s")

"""
Insight Cache - FastAPI surface for cache diagnostics and invalidation.

The cache itself is a library; this app owns the single process-wide
instance, runs its GC, and exposes the hooks used by logout and explicit
refresh flows.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from insightcache.cache import ResultCache
from config.settings import settings

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("insightcache")

APP_VERSION = "v0.1.0"
APP_NAME = "Insight Cache"


class InvalidateRequest(BaseModel):
    """Exactly one of key or pattern."""
    key: Optional[str] = None
    pattern: Optional[str] = None


def create_app(cache: Optional[ResultCache] = None) -> FastAPI:
    """
    Build the application around a cache instance.

    Args:
        cache: Cache to serve (built from settings when omitted)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        instance = cache if cache is not None else ResultCache.from_settings(settings)
        if settings.cache_gc_enabled:
            instance.start()
        app.state.cache = instance
        logger.info(f"{APP_NAME} {APP_VERSION} started")
        try:
            yield
        finally:
            instance.shutdown()

    app = FastAPI(
        title=APP_NAME,
        description="In-memory result cache for AI insight endpoints",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    def get_cache(request: Request) -> ResultCache:
        return request.app.state.cache

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/version")
    def version_info():
        """Version information endpoint."""
        return {"name": APP_NAME, "version": APP_VERSION}

    @app.get("/cache/stats")
    def cache_stats(cache: ResultCache = Depends(get_cache)):
        """Get cache statistics."""
        return cache.get_stats()

    @app.get("/cache/status/{key:path}")
    def cache_status(key: str, cache: ResultCache = Depends(get_cache)):
        """Get the cached state of one key."""
        return cache.status(key)

    @app.post("/cache/invalidate")
    def invalidate(body: InvalidateRequest, cache: ResultCache = Depends(get_cache)):
        """Invalidate one key or every key containing a pattern."""
        if (body.key is None) == (body.pattern is None):
            raise HTTPException(status_code=400, detail="Provide exactly one of 'key' or 'pattern'")
        if body.key is not None:
            return {"invalidated": int(cache.invalidate(body.key))}
        if not body.pattern:
            raise HTTPException(status_code=400, detail="'pattern' must not be empty")
        return {"invalidated": cache.invalidate_pattern(body.pattern)}

    @app.post("/cache/invalidate/user/{user_id}")
    def invalidate_user(user_id: str, cache: ResultCache = Depends(get_cache)):
        """Drop everything cached for a user (logout)."""
        return {"invalidated": cache.invalidate_user(user_id)}

    @app.post("/cache/clear")
    def clear_cache(cache: ResultCache = Depends(get_cache)):
        """Clear all cached data."""
        return {"invalidated": cache.invalidate_all()}

    return app


app = create_app()

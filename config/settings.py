"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Cache settings
    cache_default_ttl_seconds: float = 30 * 60
    cache_gc_interval_seconds: float = 5 * 60
    cache_gc_enabled: bool = True

    # Producer bounds (applied by insightcache.producers.guarded)
    producer_timeout_seconds: float = 60.0
    producer_retry_attempts: int = 3       # first try + 2 retries
    producer_retry_max_delay_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

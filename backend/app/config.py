"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./group_feed.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Group feed paging
    FEED_DEFAULT_LIMIT: int = 20
    FEED_MAX_LIMIT: int = 100
    FEED_UNSCHEDULED_LIMIT: int = 100

    # Pointer fan-out policy
    FANOUT_MODE: str = "background"  # "background" | "inline"
    FANOUT_MAX_WORKERS: int = 4
    FANOUT_RETRY_ATTEMPTS: int = 2  # 0 = queue for repair on first failure
    FANOUT_RETRY_DELAY_MS: int = 50
    FANOUT_RETRY_BACKOFF: float = 2.0

    RECONCILE_BATCH_SIZE: int = 100

    # Calendar subscription feed
    CALENDAR_BASE_URL: str = "http://localhost:8000"
    CALENDAR_MAX_EVENTS: int = 100
    CALENDAR_CACHE_MAX_AGE_MINUTES: int = 30
    CALENDAR_PRODUCT_ID: str = "-//Group Hangouts//Group Feed Calendar//EN"
    CALENDAR_TIMEZONE: str = "UTC"

    class Config:
        env_file = ".env"


settings = Settings()

"""Configuration management for the shortlink service.

Values come from the environment or a .env file, matched case-sensitively.
get_settings() builds Settings once and returns the same instance afterwards,
so tests that need other values construct Settings directly.

Key Behaviours
===============
- The non-atomic counter fallback is OFF unless COUNTER_ALLOW_NON_ATOMIC_FALLBACK
  is set. With it on, two processes can be handed the same identifier when
  Redis rejects INCRBY; the duplicate surfaces as a slug uniqueness failure.
  Only enable it for single-process or test deployments.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortlink"
    APP_ENV: str = "development"
    # Empty means "use the base URL of the incoming request".
    BASE_URL: str = ""
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortlink:shortlink@db:5432/shortlink"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Slug allocation
    COUNTER_KEY: str = "url_counter"
    COUNTER_INITIAL: int = 1
    COUNTER_ALLOW_NON_ATOMIC_FALLBACK: bool = False

    # Link cache; 0 keeps entries until evicted
    LINK_CACHE_TTL_SECONDS: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()

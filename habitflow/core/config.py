"""
Settings read from the environment (and ``.env``), cached per process.

Tests change environment variables and call ``get_settings.cache_clear()``.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Store
    database_url: str = "sqlite+aiosqlite:///./data/habitflow.db"
    store_api_key: str = ""

    # Auth
    session_ttl_hours: int = 24 * 7
    require_email_confirmation: bool = False
    password_hash_iterations: int = 390_000

    # Analytics: 7, 30 or 90
    analytics_default_range: int = 30

    # Runtime
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()

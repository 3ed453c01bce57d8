"""
Fail-fast settings checks run at the top of the app lifespan, plus a
one-line summary of what was loaded with secrets masked.
"""

import logging
from typing import List
from urllib.parse import urlsplit

from ..domain.derivations import ANALYTICS_RANGES
from .config import Settings

logger = logging.getLogger(__name__)


def _looks_like_db_url(url: str) -> bool:
    parts = urlsplit(url)
    return bool(parts.scheme) and url.lower().startswith(f"{parts.scheme}://")


def validate_config(settings: Settings) -> List[str]:
    """Return human-readable problems with *settings*; empty when usable."""
    problems: List[str] = []

    url = (settings.database_url or "").strip()
    if not url:
        problems.append("DATABASE_URL is required but missing or empty")
    elif not _looks_like_db_url(url):
        problems.append(
            "DATABASE_URL format is invalid, expected e.g. "
            f"'sqlite+aiosqlite:///./data/habitflow.db', got '{url}'"
        )

    if settings.environment.lower() == "production" and not settings.store_api_key.strip():
        problems.append("STORE_API_KEY is required in production")

    if settings.session_ttl_hours <= 0:
        problems.append("SESSION_TTL_HOURS must be positive")
    if settings.password_hash_iterations < 1:
        problems.append("PASSWORD_HASH_ITERATIONS must be positive")

    if settings.analytics_default_range not in ANALYTICS_RANGES:
        problems.append(
            f"ANALYTICS_DEFAULT_RANGE must be one of {ANALYTICS_RANGES}, "
            f"got {settings.analytics_default_range}"
        )

    return problems


def mask(secret: str) -> str:
    """``abcd***`` for a set secret, ``<empty>`` otherwise."""
    return f"{secret[:4]}***" if secret else "<empty>"


def backend_name(database_url: str) -> str:
    """``sqlite`` for ``sqlite+aiosqlite:///...`` and so on."""
    scheme = urlsplit(database_url or "").scheme
    return scheme.split("+")[0].lower() or "none"


def log_config_summary(settings: Settings) -> None:
    fields = {
        "environment": settings.environment,
        "database": backend_name(settings.database_url),
        "store_api_key": mask(settings.store_api_key),
        "email_confirmation": "on" if settings.require_email_confirmation else "off",
        "session_ttl_hours": settings.session_ttl_hours,
        "analytics_default_range": settings.analytics_default_range,
    }
    logger.info("Config loaded: %s", " | ".join(f"{k}={v}" for k, v in fields.items()))

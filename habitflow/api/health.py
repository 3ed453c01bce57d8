"""GET /health: service version, uptime and whether the habit store answers."""

import logging
import time
from typing import Any, Dict

from fastapi import APIRouter

from ..version import __version__

logger = logging.getLogger(__name__)

_started_at: float = time.monotonic()


def set_start_time() -> None:
    global _started_at
    _started_at = time.monotonic()


def get_uptime_seconds() -> float:
    return time.monotonic() - _started_at


async def check_database_health() -> bool:
    from ..core.database import health_check

    return await health_check()


def create_health_router() -> APIRouter:
    """Router factory, so tests can mount the endpoint on a bare app."""
    router = APIRouter(tags=["health"])

    @router.get("/health")
    async def health() -> Dict[str, Any]:
        store_ok = await check_database_health()
        if not store_ok:
            logger.warning("Health check: habit store is unreachable")
        return {
            "status": "healthy" if store_ok else "degraded",
            "service": "habitflow",
            "version": __version__,
            "uptime_seconds": round(get_uptime_seconds(), 2),
            "database": "connected" if store_ok else "disconnected",
        }

    return router

"""
Service Registry - wires the auth provider, habit store factory and the
per-token session registry into the container.

Usage:
    from habitflow.core.services import setup_services, get_service

    setup_services()              # at startup, after init_database()
    registry = get_service("sessions")
"""

import logging
from datetime import timedelta
from typing import Any

from .container import get_container, reset_container

logger = logging.getLogger(__name__)


def setup_services() -> None:
    """
    Register all application services in the container.

    Services are registered lazily; the database must be initialized
    before the first one that needs a session factory is resolved.
    """
    container = get_container()

    def create_settings(c):
        from .config import get_settings

        return get_settings()

    container.register("settings", create_settings)

    def create_session_factory(c):
        from .database import get_session_factory

        return get_session_factory()

    container.register("session_factory", create_session_factory)

    def create_auth_provider(c):
        from ..infrastructure.auth import SqlAlchemyAuthProvider

        settings = c.get("settings")
        return SqlAlchemyAuthProvider(
            c.get("session_factory"),
            session_ttl=timedelta(hours=settings.session_ttl_hours),
            require_email_confirmation=settings.require_email_confirmation,
        )

    container.register("auth_provider", create_auth_provider)

    def create_store_factory(c):
        from ..infrastructure.repositories import SqlAlchemyHabitStore

        session_factory = c.get("session_factory")
        return lambda identity: SqlAlchemyHabitStore(session_factory, identity)

    container.register("store_factory", create_store_factory)

    def create_session_registry(c):
        from ..services.user_session import SessionRegistry

        return SessionRegistry(c.get("auth_provider"), c.get("store_factory"))

    container.register("sessions", create_session_registry)

    logger.info("Services registered")


def get_service(name: str) -> Any:
    """
    Get a service by name from the container.

    Raises:
        KeyError: If service is not registered
    """
    return get_container().get(name)


def reset_services() -> None:
    """Reset all services (for testing)."""
    reset_container()

"""Tests for the DI container and service wiring."""

import pytest

from habitflow.core.container import ServiceContainer, get_container, reset_container
from habitflow.core.services import get_service, reset_services, setup_services


class TestServiceContainer:
    def test_singleton_is_cached(self):
        container = ServiceContainer()
        container.register("thing", lambda c: object())
        assert container.get("thing") is container.get("thing")

    def test_transient_is_rebuilt(self):
        container = ServiceContainer()
        container.register("thing", lambda c: object(), singleton=False)
        assert container.get("thing") is not container.get("thing")

    def test_factory_receives_container(self):
        container = ServiceContainer()
        container.register_instance("base", 2)
        container.register("double", lambda c: c.get("base") * 2)
        assert container.get("double") == 4

    def test_reregister_drops_cached_instance(self):
        container = ServiceContainer()
        container.register("n", lambda c: 1)
        assert container.get("n") == 1
        container.register("n", lambda c: 2)
        assert container.get("n") == 2

    def test_unknown_service(self):
        with pytest.raises(KeyError):
            ServiceContainer().get("missing")

    def test_clear(self):
        container = ServiceContainer()
        container.register_instance("x", 1)
        container.clear()
        assert not container.has("x")


class TestServiceWiring:
    @pytest.fixture(autouse=True)
    def _reset(self):
        reset_services()
        yield
        reset_services()

    @pytest.mark.asyncio
    async def test_sessions_registry_is_wired(self, session_factory):
        from habitflow.services.user_session import SessionRegistry

        setup_services()
        get_container().register_instance("session_factory", session_factory)
        registry = get_service("sessions")
        assert isinstance(registry, SessionRegistry)
        assert get_service("sessions") is registry

    def test_reset_container_starts_empty(self):
        setup_services()
        reset_container()
        assert not get_container().has("sessions")

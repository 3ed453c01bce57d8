"""
Minimal service container.

Factories are registered by name and called with the container on first
lookup; the result is cached unless the service was registered as
transient. Tests swap a dependency by registering a ready-made instance.
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Factory = Callable[["ServiceContainer"], Any]


class ServiceContainer:
    def __init__(self) -> None:
        self._factories: Dict[str, Factory] = {}
        self._transient: set = set()
        self._cache: Dict[str, Any] = {}

    def register(self, name: str, factory: Factory, singleton: bool = True) -> None:
        """Bind *name* to *factory*, dropping anything cached under it."""
        self._factories[name] = factory
        self._cache.pop(name, None)
        if singleton:
            self._transient.discard(name)
        else:
            self._transient.add(name)

    def register_instance(self, name: str, instance: Any) -> None:
        self._cache[name] = instance
        self._transient.discard(name)

    def get(self, name: str) -> Any:
        """
        Raises:
            KeyError: Nothing is registered under *name*.
        """
        if name in self._cache:
            return self._cache[name]
        try:
            factory = self._factories[name]
        except KeyError:
            raise KeyError(f"Service '{name}' is not registered") from None

        instance = factory(self)
        if name not in self._transient:
            self._cache[name] = instance
            logger.debug(f"Built service {name}")
        return instance

    def has(self, name: str) -> bool:
        return name in self._factories or name in self._cache

    def clear(self) -> None:
        self._factories.clear()
        self._transient.clear()
        self._cache.clear()


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """Throw away every registration (shutdown and tests)."""
    global _container
    if _container is not None:
        _container.clear()
    _container = ServiceContainer()

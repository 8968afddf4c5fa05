"""Registry of named, reusable group bodies ("shared examples").

Shared examples are registered with ``describe.shared(name, body)`` while
test files load and are looked up by ``it.behaves_like(name)`` when the
tree is built. The registry is global to the process and read-only once
execution starts.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class SharedExampleNotFoundError(LookupError):
    """Raised when ``behaves_like`` names a shared example that was never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No shared example named {name!r} has been registered")
        self.name = name


class SharedExampleRegistry:
    """Name-keyed store of group bodies.

    Registering a name twice replaces the earlier body.
    """

    def __init__(self) -> None:
        self._bodies: dict[str, Callable[[], object]] = {}

    def register(self, name: str, body: Callable[[], object]) -> None:
        """Store *body* under *name*, replacing any body already registered.

        Args:
            name: Name later passed to ``it.behaves_like``.
            body: Group body declaring the shared tests and hooks.
        """
        if name in self._bodies:
            logger.debug("Replacing shared example %r", name)
        self._bodies[name] = body

    def resolve(self, name: str) -> Callable[[], object]:
        """Look up the body registered as *name*.

        Returns:
            The most recently registered body for *name*.

        Raises:
            SharedExampleNotFoundError: If nothing is registered under *name*.
        """
        try:
            return self._bodies[name]
        except KeyError:
            raise SharedExampleNotFoundError(name) from None

    def clear(self) -> None:
        """Forget every registered shared example."""
        self._bodies.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._bodies

    def __len__(self) -> int:
        return len(self._bodies)


class _RegistrySingleton:
    """Singleton holder for the shared example registry."""

    _instance: SharedExampleRegistry | None = None

    @classmethod
    def get(cls) -> SharedExampleRegistry:
        if cls._instance is None:
            cls._instance = SharedExampleRegistry()
        return cls._instance


def get_shared_examples() -> SharedExampleRegistry:
    """Return the process-wide shared example registry."""
    return _RegistrySingleton.get()

"""Shared fixtures: every test starts from an empty tree and registry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from arbor.events import EVENT_NAMES, EventDispatcher, reset_listeners
from arbor.runner import reset_state

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _fresh_state() -> Iterator[None]:
    """Reset the global builder, shared examples and listeners around each test."""
    reset_state()
    reset_listeners()
    yield
    reset_state()
    reset_listeners()


class EventRecorder:
    """Records every engine event dispatched on its own dispatcher."""

    def __init__(self) -> None:
        self.dispatcher = EventDispatcher()
        self.events: list[tuple[str, tuple[Any, ...]]] = []
        for name in sorted(EVENT_NAMES):
            self.dispatcher.listen(name, self._recorder(name))

    def _recorder(self, name: str) -> Any:
        def record(*args: Any) -> None:
            self.events.append((name, args))

        return record

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def subjects(self, event_name: str) -> list[str]:
        """Names of the groups or tests carried by *event_name* events."""
        return [str(args[-1].name) for name, args in self.events if name == event_name]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()

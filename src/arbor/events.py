"""Publish/subscribe bus between the execution engine and reporters.

Event names and payloads emitted by the engine:

- ``beginningDescribe(describe_stack, group)``
- ``skippingDescribe(describe_stack, group)``
- ``skippingTest(test)``
- ``finishedTest(test)``
- ``finishedTestRun()``
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

BEGINNING_DESCRIBE = "beginningDescribe"
SKIPPING_DESCRIBE = "skippingDescribe"
SKIPPING_TEST = "skippingTest"
FINISHED_TEST = "finishedTest"
FINISHED_TEST_RUN = "finishedTestRun"

EVENT_NAMES = frozenset(
    {BEGINNING_DESCRIBE, SKIPPING_DESCRIBE, SKIPPING_TEST, FINISHED_TEST, FINISHED_TEST_RUN}
)

Handler = Callable[..., Any]


class EventDispatcher:
    """Synchronous dispatcher calling handlers in registration order."""

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[Handler]] = defaultdict(list)

    def listen(self, event_name: str, handler: Handler) -> None:
        """Register *handler* for *event_name*.

        Args:
            event_name: One of :data:`EVENT_NAMES`. Other names are accepted
                with a warning, since nothing built in will dispatch them.
            handler: Called with the event's payload each time it is dispatched.
        """
        if event_name not in EVENT_NAMES:
            logger.warning("Listening for unknown event %r", event_name)
        self._handlers[event_name].append(handler)

    def dispatch(self, event_name: str, *args: Any) -> None:
        """Call every handler for *event_name* with *args*, in registration order.

        Exceptions raised by a handler propagate to the caller.
        """
        for handler in list(self._handlers.get(event_name, ())):
            handler(*args)

    def clear(self) -> None:
        """Remove every handler."""
        self._handlers.clear()


_default_dispatcher = EventDispatcher()


def get_dispatcher() -> EventDispatcher:
    """Return the process-wide dispatcher."""
    return _default_dispatcher


def listen(event_name: str, handler: Handler) -> None:
    """Register *handler* on the process-wide dispatcher."""
    _default_dispatcher.listen(event_name, handler)


def dispatch(event_name: str, *args: Any) -> None:
    """Dispatch *event_name* on the process-wide dispatcher."""
    _default_dispatcher.dispatch(event_name, *args)


def reset_listeners() -> None:
    """Remove every handler from the process-wide dispatcher."""
    _default_dispatcher.clear()

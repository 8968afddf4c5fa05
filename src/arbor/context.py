"""Call-scoped "current test" marker.

The execution engine binds the running :class:`~arbor.models.blocks.Test`
here for the duration of its hooks and body so that ``expect`` can record
failures without being handed the test. Async bodies run in tasks, which
copy the context when created, so each body keeps seeing its own test.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from arbor.models.blocks import Test

_current_test: ContextVar[Test | None] = ContextVar("arbor_current_test", default=None)


def get_current_test() -> Test | None:
    """Return the test currently accepting failures, if any."""
    return _current_test.get()


@contextmanager
def running(test: Test) -> Iterator[Test]:
    """Mark *test* as current until the block exits."""
    token = _current_test.set(test)
    try:
        yield test
    finally:
        _current_test.reset(token)

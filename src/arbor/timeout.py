"""Timeout guard raced against awaitable test bodies.

When the guard wins, the engine stops waiting for the body but does not
cancel it: the body keeps running in the background until it settles on
its own, and whatever it settles with is discarded. Only the test's
recorded result is guaranteed, not that the hung work stops.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class TestTimeoutError(Exception):
    """A test body did not settle within its time limit."""

    __test__ = False

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Test exceeded its time limit of {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class TimeoutGuard:
    """Single-shot delay that resolves to a :class:`TestTimeoutError`."""

    def __init__(self, timeout_ms: int) -> None:
        if timeout_ms <= 0:
            msg = f"Timeout must be positive, got {timeout_ms}"
            raise ValueError(msg)
        self.timeout_ms = timeout_ms

    async def wait(self) -> TestTimeoutError:
        await asyncio.sleep(self.timeout_ms / 1000)
        return TestTimeoutError(self.timeout_ms)


def _discard_late_settlement(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Discarding late failure from timed-out test body: %r", exc)


async def race_with_timeout(body: asyncio.Future[Any], timeout_ms: int) -> Any:
    """Wait for *body*, or raise :class:`TestTimeoutError` after *timeout_ms*.

    If both settle in the same tick the body wins. A body that loses the
    race is left running and its eventual result or exception is dropped.
    """
    guard = asyncio.ensure_future(TimeoutGuard(timeout_ms).wait())
    try:
        done, _ = await asyncio.wait({body, guard}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        guard.cancel()
        raise

    if body in done:
        guard.cancel()
        return body.result()

    logger.debug("Test body still pending after %dms, abandoning it", timeout_ms)
    body.add_done_callback(_discard_late_settlement)
    raise guard.result()

"""Depth-first execution of a filtered block tree.

Tests run strictly one after another. For each runnable test the engine
runs every ancestor ``before_each`` hook root-first, then the body (racing
awaitable bodies against the test's timeout), then every ancestor
``after_each`` hook, also root-first. Any exception stops the sequence,
is recorded on the test, and skips the remaining hooks. Per-test errors
never escape the engine, including a ``CancelledError`` raised by a body's
own work. Only cancelling the run itself propagates.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from typing import TYPE_CHECKING, Any

from arbor.context import running
from arbor.events import (
    BEGINNING_DESCRIBE,
    FINISHED_TEST,
    FINISHED_TEST_RUN,
    SKIPPING_DESCRIBE,
    SKIPPING_TEST,
    EventDispatcher,
    get_dispatcher,
)
from arbor.filters import apply_filters
from arbor.models.blocks import Block, Group, Test
from arbor.timeout import race_with_timeout

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from arbor.models.blocks import Hook

logger = logging.getLogger(__name__)


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def _run_is_cancelled() -> bool:
    """Whether the task running the engine has itself been asked to cancel."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


def any_failed(block: Block) -> bool:
    """Return ``True`` if any test at or below *block* recorded an error."""
    if isinstance(block, Test):
        return block.failed
    return any(any_failed(child) for child in block.children)


class ExecutionEngine:
    """Walks a block tree, running hooks and bodies and emitting events."""

    def __init__(self, dispatcher: EventDispatcher | None = None) -> None:
        self.dispatcher = dispatcher or get_dispatcher()
        self._describe_stack: list[Group] = []

    async def run(self, root: Group) -> bool:
        """Run every child of *root* and return whether anything failed."""
        self._describe_stack = []
        for child in root.children:
            await self.run_block(child)
        return any_failed(root)

    async def run_block(self, block: Block) -> None:
        if isinstance(block, Test):
            await self._run_test(block)
        else:
            await self._run_group(block)

    async def _run_group(self, group: Group) -> None:
        stack = tuple(self._describe_stack)
        if group.skip:
            self.dispatcher.dispatch(SKIPPING_DESCRIBE, stack, group)
            return
        self.dispatcher.dispatch(BEGINNING_DESCRIBE, stack, group)
        self._describe_stack.append(group)
        try:
            for child in group.children:
                await self.run_block(child)
        finally:
            self._describe_stack.pop()

    async def _run_test(self, test: Test) -> None:
        test.errors = []
        test.finished = False
        test.describe_stack = tuple(self._describe_stack)
        if not test.runnable:
            test.finished = True
            self.dispatcher.dispatch(SKIPPING_TEST, test)
            return

        with running(test):
            try:
                await self._invoke_hooks(group.befores for group in test.describe_stack)
                await self._run_body(test.body, test)
                await self._invoke_hooks(group.afters for group in test.describe_stack)
            except Exception as exc:
                test.errors.append(exc)
            except asyncio.CancelledError as exc:
                if _run_is_cancelled():
                    raise
                test.errors.append(exc)
            finally:
                test.finished = True

        if test.errors:
            logger.debug("Test %r failed with %d error(s)", test.full_name(), len(test.errors))
        self.dispatcher.dispatch(FINISHED_TEST, test)

    @staticmethod
    async def _invoke_hooks(hook_groups: Iterable[tuple[Hook, ...]]) -> None:
        for hooks in hook_groups:
            for hook in hooks:
                await _maybe_await(hook())

    @staticmethod
    async def _run_body(body: Callable[[], Any], test: Test) -> None:
        result = body()
        if not inspect.isawaitable(result):
            return
        pending = asyncio.ensure_future(result)
        # Let the body run up to its first suspension point so that
        # it.times_out_after() can adjust the limit before the guard is armed.
        await asyncio.sleep(0)
        if pending.done():
            pending.result()
            return
        await race_with_timeout(pending, test.timeout_ms)


async def run_parsed_blocks(
    root: Group,
    *,
    tags: Iterable[str] | None = None,
    should_randomize: bool = False,
    rng: random.Random | None = None,
    dispatcher: EventDispatcher | None = None,
) -> bool:
    """Filter *root*, run what remains, and report whether any test failed.

    Emits ``finishedTestRun`` once every block has been visited.
    """
    engine = ExecutionEngine(dispatcher)
    filtered = apply_filters(root, tags=tags, should_randomize=should_randomize, rng=rng)
    failed = await engine.run(filtered)
    engine.dispatcher.dispatch(FINISHED_TEST_RUN)
    return failed

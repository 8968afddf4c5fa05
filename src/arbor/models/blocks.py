"""Block tree models: groups (``describe``) and tests (``it``)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

DEFAULT_TIMEOUT_MS = 5000

Hook: TypeAlias = Callable[[], Any]


@dataclass(eq=False)
class Test:
    """A single test case declared with ``it``.

    Tests compare by identity: two declarations with the same name are
    still different tests.
    """

    __test__ = False

    name: Any
    """Display label."""

    body: Callable[[], Any] | None = None
    """Zero-argument callable, possibly async. ``None`` means skipped."""

    skip: bool = False
    focus: bool = False
    tags: frozenset[str] = frozenset()

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    """Time after which an awaitable body is abandoned."""

    errors: list[BaseException] = field(default_factory=list)
    """Failures captured during the last execution. Empty means passed."""

    describe_stack: tuple[Group, ...] = ()
    """Ancestor groups, root-most first, captured when execution starts."""

    finished: bool = False
    """Set once the engine has finalized this test's result."""

    @property
    def runnable(self) -> bool:
        return not self.skip and self.body is not None

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    def record_failure(self, error: Exception) -> bool:
        """Append *error* unless the result is already final.

        Returns ``True`` if the error was recorded.
        """
        if self.finished:
            return False
        self.errors.append(error)
        return True

    def full_name(self, separator: str = " → ") -> str:
        """Ancestor chain plus this test's name, as shown in failure lists."""
        names = [*(str(group.name) for group in self.describe_stack), str(self.name)]
        return separator.join(names)


@dataclass(frozen=True)
class Group:
    """A named container of hooks and children declared with ``describe``.

    Groups are immutable once built; filters produce new groups with
    :func:`dataclasses.replace`.
    """

    name: Any
    skip: bool = False
    focus: bool = False
    tags: frozenset[str] = frozenset()
    shared_context_fn: Callable[..., Any] | None = None
    befores: tuple[Hook, ...] = ()
    afters: tuple[Hook, ...] = ()
    children: tuple[Block, ...] = ()

    def tests(self) -> list[Test]:
        """All tests below this group, depth-first in child order."""
        found: list[Test] = []
        for child in self.children:
            if isinstance(child, Test):
                found.append(child)
            else:
                found.extend(child.tests())
        return found


Block: TypeAlias = Group | Test


def is_test(block: Block) -> bool:
    return isinstance(block, Test)

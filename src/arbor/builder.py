"""Block tree construction.

A :class:`BlockTreeBuilder` keeps a stack of :class:`GroupBuilder` objects,
one per ``describe`` currently being declared, with the root group at the
bottom. Each group builder is mutable only while its body runs and is
frozen into a :class:`~arbor.models.blocks.Group` when the body returns.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from arbor.models.blocks import DEFAULT_TIMEOUT_MS, Block, Group, Hook, Test

logger = logging.getLogger(__name__)

ROOT_NAME = "root"

_GROUP_OPTIONS = frozenset({"focus", "skip", "tags"})
_TEST_OPTIONS = _GROUP_OPTIONS | {"timeout_ms"}


class UsageError(Exception):
    """Raised when the declarative API is called in an invalid way."""


def _normalize_tags(raw: Any) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        return frozenset({raw})
    return frozenset(str(tag) for tag in raw)


def _check_options(options: Mapping[str, Any], allowed: frozenset[str], kind: str) -> None:
    unknown = sorted(set(options) - allowed)
    if unknown:
        msg = f"Unknown {kind} option(s): {', '.join(unknown)}"
        raise UsageError(msg)


def _check_timeout(timeout_ms: Any) -> int:
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
        msg = f"timeout_ms must be a positive integer, got {timeout_ms!r}"
        raise UsageError(msg)
    return timeout_ms


@dataclass
class GroupBuilder:
    """Mutable state of a group while its body is being declared."""

    name: Any
    skip: bool = False
    focus: bool = False
    tags: frozenset[str] = frozenset()
    shared_context_fn: Callable[..., Any] | None = None
    befores: list[Hook] = field(default_factory=list)
    afters: list[Hook] = field(default_factory=list)
    children: list[Block] = field(default_factory=list)

    def build(self) -> Group:
        return Group(
            name=self.name,
            skip=self.skip,
            focus=self.focus,
            tags=self.tags,
            shared_context_fn=self.shared_context_fn,
            befores=tuple(self.befores),
            afters=tuple(self.afters),
            children=tuple(self.children),
        )


class BlockTreeBuilder:
    """Accumulates groups and tests as test files declare them."""

    def __init__(self, default_timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        self.default_timeout_ms = _check_timeout(default_timeout_ms)
        self._stack: list[GroupBuilder] = [GroupBuilder(name=ROOT_NAME)]

    @property
    def current(self) -> GroupBuilder:
        """The group that new blocks are added to."""
        return self._stack[-1]

    @property
    def depth(self) -> int:
        """Number of open ``describe`` bodies."""
        return len(self._stack) - 1

    def describe(
        self,
        name: Any,
        body: Callable[[], Any] | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        shared_context_fn: Callable[..., Any] | None = None,
    ) -> Group:
        """Declare a group, run its *body* to collect children, and attach it.

        A group declared without a body is skipped. If *body* raises, the
        partially built group is discarded and the exception propagates.

        Args:
            name: Display label.
            body: Synchronous zero-argument callable declaring the children.
            options: Any of ``focus``, ``skip`` and ``tags``.
            shared_context_fn: Context callable recorded for display when the
                group comes from a shared example.

        Returns:
            The built group, already attached to its parent.

        Raises:
            UsageError: On an unknown option or an async *body*.
        """
        options = dict(options or {})
        _check_options(options, _GROUP_OPTIONS, "describe")

        group_builder = GroupBuilder(
            name=name,
            skip=body is None or bool(options.get("skip", False)),
            focus=bool(options.get("focus", False)),
            tags=_normalize_tags(options.get("tags")),
            shared_context_fn=shared_context_fn,
        )
        parent = self.current
        self._stack.append(group_builder)
        try:
            if body is not None:
                result = body()
                if inspect.isawaitable(result):
                    if inspect.iscoroutine(result):
                        result.close()
                    msg = f"describe body for {name!r} must be synchronous"
                    raise UsageError(msg)
        finally:
            self._stack.pop()

        group = group_builder.build()
        parent.children.append(group)
        logger.debug(
            "Declared group %r (%d children, skip=%s, focus=%s)",
            name,
            len(group.children),
            group.skip,
            group.focus,
        )
        return group

    def it(
        self,
        name: Any,
        body: Callable[[], Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Test:
        """Declare a test in the current group.

        Args:
            name: Display label.
            body: Zero-argument callable, possibly async. ``None`` declares
                a skipped test.
            options: Any of ``focus``, ``skip``, ``tags`` and ``timeout_ms``.

        Returns:
            The declared test.

        Raises:
            UsageError: On an unknown option or a non-positive ``timeout_ms``.
        """
        options = dict(options or {})
        _check_options(options, _TEST_OPTIONS, "it")

        timeout_ms = options.get("timeout_ms")
        test = Test(
            name=name,
            body=body,
            skip=bool(options.get("skip", False)),
            focus=bool(options.get("focus", False)),
            tags=_normalize_tags(options.get("tags")),
            timeout_ms=(
                self.default_timeout_ms if timeout_ms is None else _check_timeout(timeout_ms)
            ),
        )
        self.current.children.append(test)
        return test

    def before_each(self, hook: Hook) -> None:
        """Add *hook* to run before every test in the current group.

        Raises:
            UsageError: If called outside any ``describe`` body.
        """
        self._require_open_group("before_each")
        self.current.befores.append(hook)

    def after_each(self, hook: Hook) -> None:
        """Add *hook* to run after every passing test in the current group.

        Raises:
            UsageError: If called outside any ``describe`` body.
        """
        self._require_open_group("after_each")
        self.current.afters.append(hook)

    def _require_open_group(self, what: str) -> None:
        if self.depth == 0:
            msg = f"{what} must be called inside a describe body"
            raise UsageError(msg)

    def root(self) -> Group:
        """Snapshot of the root group with everything declared so far."""
        return self._stack[0].build()


class _BuilderSingleton:
    """Singleton holder for the process-wide tree builder."""

    _instance: BlockTreeBuilder | None = None

    @classmethod
    def get(cls) -> BlockTreeBuilder:
        if cls._instance is None:
            cls._instance = BlockTreeBuilder()
        return cls._instance

    @classmethod
    def reset(cls, default_timeout_ms: int = DEFAULT_TIMEOUT_MS) -> BlockTreeBuilder:
        cls._instance = BlockTreeBuilder(default_timeout_ms)
        return cls._instance


def get_builder() -> BlockTreeBuilder:
    """Return the builder that the ``describe``/``it`` API writes to."""
    return _BuilderSingleton.get()


def reset_builder(default_timeout_ms: int = DEFAULT_TIMEOUT_MS) -> BlockTreeBuilder:
    """Discard the current tree and start a fresh one."""
    return _BuilderSingleton.reset(default_timeout_ms)

"""Declarative API used by test files.

Example::

    from arbor import describe, expect, it

    def calculator():
        it("adds", lambda: expect(1 + 1).to_be(2))

    describe("calc", calculator)

``describe`` and ``it`` accept an optional leading options mapping, keyword
options, or both. The ``.only`` and ``.skip`` variants bind ``focus`` or
``skip`` on top of whatever the caller passed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from arbor.builder import UsageError, get_builder
from arbor.context import get_current_test
from arbor.models.blocks import Group, Hook, Test
from arbor.shared_examples import get_shared_examples


def _split_arguments(args: tuple[Any, ...]) -> tuple[dict[str, Any], Callable[[], Any] | None]:
    """Split ``([options], [body])`` positional arguments."""
    if not args:
        return {}, None
    first, *rest = args
    if isinstance(first, Mapping):
        if len(rest) > 1:
            msg = "expected at most an options mapping and a body"
            raise UsageError(msg)
        return dict(first), (rest[0] if rest else None)
    if rest:
        msg = "the body must be the last positional argument"
        raise UsageError(msg)
    return {}, first


def _declare_group(name: Any, body: Callable[[], Any] | None, options: dict[str, Any]) -> Group:
    return get_builder().describe(name, body, options)


def _declare_test(name: Any, body: Callable[[], Any] | None, options: dict[str, Any]) -> Test:
    return get_builder().it(name, body, options)


class _Declarer:
    """A declaring function with extension options bound over the caller's."""

    def __init__(self, declare: Callable[..., Any], **extension_options: Any) -> None:
        self._declare = declare
        self._extension_options = extension_options

    def __call__(self, name: Any, *args: Any, **options: Any) -> Any:
        user_options, body = _split_arguments(args)
        merged = {**user_options, **options, **self._extension_options}
        return self._declare(name, body, merged)


class _Describe(_Declarer):
    def __init__(self) -> None:
        super().__init__(_declare_group)
        self.only = _Declarer(_declare_group, focus=True)
        self.skip = _Declarer(_declare_group, skip=True)

    @staticmethod
    def shared(name: str, body: Callable[[], Any]) -> None:
        """Register *body* as the shared example *name*, replacing any earlier one."""
        get_shared_examples().register(name, body)


class _It(_Declarer):
    def __init__(self) -> None:
        super().__init__(_declare_test)
        self.only = _Declarer(_declare_test, focus=True)
        self.skip = _Declarer(_declare_test, skip=True)

    @staticmethod
    def times_out_after(millis: int) -> None:
        """Change the time limit of the test that is currently running.

        Only valid inside a test body, before its first ``await``.
        """
        test = get_current_test()
        if test is None:
            msg = "it.times_out_after can only be called from inside a running test"
            raise UsageError(msg)
        if isinstance(millis, bool) or not isinstance(millis, int) or millis <= 0:
            msg = f"timeout must be a positive integer, got {millis!r}"
            raise UsageError(msg)
        test.timeout_ms = millis

    @staticmethod
    def behaves_like(name: str, shared_context_fn: Callable[..., Any] | None = None) -> Group:
        """Declare a group built from the shared example registered as *name*."""
        body = get_shared_examples().resolve(name)
        return get_builder().describe(name, body, shared_context_fn=shared_context_fn)


describe = _Describe()
it = _It()


def before_each(hook: Hook) -> Hook:
    """Run *hook* before every test in the enclosing group. Usable as a decorator."""
    get_builder().before_each(hook)
    return hook


def after_each(hook: Hook) -> Hook:
    """Run *hook* after every passing test in the enclosing group. Usable as a decorator."""
    get_builder().after_each(hook)
    return hook

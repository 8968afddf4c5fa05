"""``expect(actual).<matcher>(...)`` entry point."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from arbor.assertions.errors import ExpectationError, UnknownMatcherError
from arbor.assertions.matchers import MATCHERS
from arbor.context import get_current_test

if TYPE_CHECKING:
    from collections.abc import Callable

    from arbor.models.blocks import Test


class Expectation:
    """Binds an actual value to the registered matchers.

    A failed expectation is recorded on the test and the body carries on,
    so several failures can accumulate in one test. Outside a test the
    :class:`ExpectationError` is raised to the caller instead.
    """

    def __init__(self, actual: Any, test: Test | None = None) -> None:
        self.actual = actual
        self._test = test

    def __getattr__(self, name: str) -> Callable[..., None]:
        if name.startswith("_"):
            raise AttributeError(name)
        matcher = MATCHERS.get(name)
        if matcher is None:
            raise UnknownMatcherError(name)

        def check(*args: Any) -> None:
            try:
                matcher(self.actual, *args)
            except ExpectationError as exc:
                test = self._test or get_current_test()
                if test is None:
                    raise
                test.record_failure(exc)

        return check


def expect(actual: Any, *, test: Test | None = None) -> Expectation:
    """Start an expectation on *actual*, recording failures on *test* or the running test."""
    return Expectation(actual, test)

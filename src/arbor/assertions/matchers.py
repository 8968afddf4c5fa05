"""Built-in matchers.

A matcher takes the actual value plus any expected arguments and raises
:class:`ExpectationError` when the expectation does not hold. Matchers are
looked up by name in :data:`MATCHERS`; add new ones with
:func:`register_matcher`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from arbor.assertions.errors import ExpectationError

Matcher = Callable[..., None]

MATCHERS: dict[str, Matcher] = {}


def register_matcher(fn: Matcher) -> Matcher:
    """Register *fn* under its function name."""
    MATCHERS[fn.__name__] = fn
    return fn


@register_matcher
def to_be_defined(actual: Any) -> None:
    if actual is None:
        raise ExpectationError("<actual> to be defined", actual=actual)


@register_matcher
def to_be(actual: Any, expected: Any) -> None:
    """Expect *actual* to equal *expected*.

    Compares with ``==`` rather than identity, so ``expect([1]).to_be([1])``
    passes. Use ``expect(a is b).to_be(True)`` to check identity.
    """
    if actual != expected:
        raise ExpectationError("<actual> to be <expected>", actual=actual, expected=expected)


@register_matcher
def to_throw(source: Callable[[], Any], expected: BaseException | None = None) -> None:
    """Expect calling *source* to raise, optionally with *expected*'s message."""
    try:
        source()
    except Exception as exc:
        if expected is not None and str(exc) != str(expected):
            raise ExpectationError(
                "<source> to raise an exception, but the message did not match.\n"
                "  Expected exception message: <expected>\n"
                "    Actual exception message: <actual>",
                source=source,
                actual=str(exc),
                expected=str(expected),
            ) from exc
        return
    raise ExpectationError("<source> to raise an exception but it did not", source=source)


@register_matcher
def to_have_length(actual: Any, expected: int) -> None:
    if len(actual) != expected:
        raise ExpectationError(
            "value to have length <expected> but it was <actual>",
            actual=len(actual),
            expected=expected,
        )

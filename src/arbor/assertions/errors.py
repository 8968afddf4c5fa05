"""Errors raised by the assertion layer."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from rich.text import Text

_PLACEHOLDERS = ("actual", "expected", "source")

_MISSING = object()


class ExpectationError(AssertionError):
    """A matcher's expectation was not met.

    *template* describes the expectation and may contain ``<actual>``,
    ``<expected>`` and ``<source>`` placeholders, which are filled with the
    ``repr`` of the corresponding values.
    """

    def __init__(
        self,
        template: str,
        *,
        actual: Any = _MISSING,
        expected: Any = _MISSING,
        source: Any = _MISSING,
    ) -> None:
        self.template = template
        self.values: dict[str, Any] = {
            key: value
            for key, value in (("actual", actual), ("expected", expected), ("source", source))
            if value is not _MISSING
        }
        super().__init__(self._fill(repr))

    def _fill(self, render: Callable[[Any], str]) -> str:
        message = "Expected " + self.template
        for key in _PLACEHOLDERS:
            if key in self.values:
                message = message.replace(f"<{key}>", render(self.values[key]))
        return message

    def render(self) -> Text:
        """The message as rich text with the substituted values in bold."""
        text = Text("Expected ")
        remaining = self.template
        while remaining:
            start = remaining.find("<")
            end = remaining.find(">", start)
            key = remaining[start + 1 : end] if start != -1 and end != -1 else None
            if key is None:
                text.append(remaining)
                break
            if key in self.values:
                text.append(remaining[:start])
                text.append(repr(self.values[key]), style="bold")
            else:
                text.append(remaining[: end + 1])
            remaining = remaining[end + 1 :]
        return text


class UnknownMatcherError(AttributeError):
    """``expect(...)`` was asked for a matcher that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown matcher {name!r}")
        self.name = name

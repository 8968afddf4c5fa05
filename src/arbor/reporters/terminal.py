"""Terminal reporter with rich output formatting."""

from __future__ import annotations

import time
import traceback
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.text import Text

from arbor.assertions.errors import ExpectationError
from arbor.events import (
    BEGINNING_DESCRIBE,
    FINISHED_TEST,
    FINISHED_TEST_RUN,
    SKIPPING_DESCRIBE,
    SKIPPING_TEST,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from arbor.events import EventDispatcher
    from arbor.models.blocks import Group, Test

console = Console()

_SECONDS_PER_MINUTE = 60.0
_INDENT_WIDTH = 2
_BAR_WIDTH = 40


def _format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string."""
    if seconds >= _SECONDS_PER_MINUTE:
        return f"{seconds / _SECONDS_PER_MINUTE:.1f}m"
    return f"{seconds:.1f}s"


def _indent(depth: int, message: str) -> str:
    return f"{' ' * (depth * _INDENT_WIDTH)}{message}"


def _full_description(test: Test) -> str:
    return " → ".join(
        f"[bold]{escape(str(name))}[/bold]"
        for name in [*(group.name for group in test.describe_stack), test.name]
    )


def _build_result_bar(passed: int, failed: int, skipped: int, width: int = _BAR_WIDTH) -> str:
    """Build a colored bar string proportional to result counts."""
    total = passed + failed + skipped
    if total == 0:
        return f"[dim]{'░' * width}[/dim]"

    chars: list[tuple[str, str]] = []
    for count, color in ((passed, "green"), (failed, "red"), (skipped, "yellow")):
        chars.extend([("█", color)] * round(count / total * width))

    chars = chars[:width]
    while len(chars) < width:
        chars.append(("░", "dim"))

    # Group consecutive same-color runs for efficient markup
    result = ""
    i = 0
    while i < len(chars):
        char, color = chars[i]
        j = i + 1
        while j < len(chars) and chars[j][1] == color:
            j += 1
        result += f"[{color}]{char * (j - i)}[/{color}]"
        i = j
    return result


class TerminalReporter:
    """Prints the tree as it runs, then a failure list and summary."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console
        self.successes = 0
        self.skipped = 0
        self.failures: list[Test] = []
        self._started_at: float | None = None

    def install(self, dispatcher: EventDispatcher) -> TerminalReporter:
        """Subscribe to every engine event on *dispatcher*."""
        dispatcher.listen(BEGINNING_DESCRIBE, self.on_beginning_describe)
        dispatcher.listen(SKIPPING_DESCRIBE, self.on_skipping_describe)
        dispatcher.listen(SKIPPING_TEST, self.on_skipping_test)
        dispatcher.listen(FINISHED_TEST, self.on_finished_test)
        dispatcher.listen(FINISHED_TEST_RUN, self.on_finished_test_run)
        return self

    def _mark_started(self) -> None:
        if self._started_at is None:
            self._started_at = time.perf_counter()

    def on_beginning_describe(self, describe_stack: Sequence[Group], group: Group) -> None:
        self._mark_started()
        label = escape(str(group.name))
        if group.shared_context_fn is not None:
            label += " [dim](shared)[/dim]"
        self.console.print(_indent(len(describe_stack), label))

    def on_skipping_describe(self, describe_stack: Sequence[Group], group: Group) -> None:
        self._mark_started()
        self.console.print(
            _indent(
                len(describe_stack),
                f"[yellow]⊘[/yellow] {escape(str(group.name))} [dim](skipped)[/dim]",
            )
        )

    def on_skipping_test(self, test: Test) -> None:
        self._mark_started()
        self.skipped += 1
        self.console.print(
            _indent(
                len(test.describe_stack),
                f"[yellow]⊘[/yellow] {escape(str(test.name))} [dim](skipped)[/dim]",
            )
        )

    def on_finished_test(self, test: Test) -> None:
        self._mark_started()
        name = escape(str(test.name))
        if test.errors:
            self.failures.append(test)
            self.console.print(_indent(len(test.describe_stack), f"[red]✗[/red] {name}"))
        else:
            self.successes += 1
            self.console.print(_indent(len(test.describe_stack), f"[green]✓[/green] {name}"))

    def on_finished_test_run(self) -> None:
        self.print_failures()
        self.print_summary()
        self.reset()

    def print_failures(self) -> None:
        if not self.failures:
            return
        self.console.print("\n[bold red]Failures:[/bold red]\n")
        for test in self.failures:
            self.console.print(_full_description(test))
            for error in test.errors:
                self._print_error(error)
            self.console.print()

    def _print_error(self, error: BaseException) -> None:
        if isinstance(error, ExpectationError):
            self.console.print(Text("  ").append(error.render()))
            return
        self.console.print(f"  [red]{escape(type(error).__name__)}[/red]: {escape(str(error))}")
        if error.__traceback__ is not None:
            formatted = "".join(traceback.format_tb(error.__traceback__))
            self.console.print(Text(formatted.rstrip(), style="dim"))

    def print_summary(self) -> None:
        failed = len(self.failures)
        elapsed = time.perf_counter() - self._started_at if self._started_at else 0.0
        bar = _build_result_bar(self.successes, failed, self.skipped)
        self.console.print()
        self.console.print(
            f"[green]{self.successes}[/green] tests passed, "
            f"[red]{failed}[/red] tests failed."
        )
        extra = f"[yellow]{self.skipped} skipped[/yellow]  " if self.skipped else ""
        self.console.print(f"  {bar}  {extra}[dim]⏱ {_format_duration(elapsed)}[/dim]")

    def reset(self) -> None:
        """Clear counters so the reporter can follow another run."""
        self.successes = 0
        self.skipped = 0
        self.failures = []
        self._started_at = None

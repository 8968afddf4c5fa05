"""arbor CLI: top-level command group."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from arbor import __version__
from arbor.config import ArborConfig, load_config, validate_config
from arbor.events import EventDispatcher
from arbor.loader import discover_test_files
from arbor.models.run import RunOptions
from arbor.reporters.terminal import TerminalReporter
from arbor.runner import ExitCode, RunOutcome, run_once
from arbor.watcher import TestFileWatcher

logger = logging.getLogger(__name__)
console = Console()


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _resolve_options(
    config: ArborConfig,
    tags: tuple[str, ...],
    randomize: bool | None,
    seed: int | None,
) -> RunOptions:
    """Merge command-line flags over the configured defaults."""
    return RunOptions(
        tags=list(tags) or list(config.execution.tags) or None,
        should_randomize=config.execution.randomize if randomize is None else randomize,
        seed=seed,
    )


def _display_outcome(outcome: RunOutcome) -> None:
    if outcome.error is not None:
        console.print(f"[red]✗[/red] {escape(str(outcome.error))}")
        cause = outcome.error.cause
        console.print(f"  [dim]{type(cause).__name__}: {escape(str(cause))}[/dim]")
    if outcome.seed is not None:
        console.print(f"[dim]Randomized with seed {outcome.seed}[/dim]")


def _run_files(
    files: list[Path],
    options: RunOptions,
    config: ArborConfig,
    dispatcher: EventDispatcher,
    *,
    keep_shared_examples: bool = False,
) -> RunOutcome:
    outcome = asyncio.run(
        run_once(
            files,
            options,
            default_timeout_ms=config.execution.default_timeout_ms,
            dispatcher=dispatcher,
            keep_shared_examples=keep_shared_examples,
        )
    )
    _display_outcome(outcome)
    return outcome


def _watch_loop(
    watcher: TestFileWatcher,
    options: RunOptions,
    config: ArborConfig,
    dispatcher: EventDispatcher,
    outcome: RunOutcome,
) -> RunOutcome:
    """Rerun changed files until interrupted.

    Args:
        watcher: Watcher for the files the initial run used.
        options: Run options shared by every rerun.
        config: Effective configuration.
        dispatcher: Dispatcher the reporter listens on.
        outcome: Outcome of the initial run.

    Returns:
        The outcome of the most recent run.
    """
    watcher.start()
    console.print("[dim]Watching for changes. Press Ctrl-C to stop.[/dim]")
    try:
        while watcher.running:
            event = watcher.wait_for_event()
            files = event.rerun_files
            if files:
                outcome = _run_files(
                    files, options, config, dispatcher, keep_shared_examples=True
                )
    except KeyboardInterrupt:
        watcher.stop()
        console.print("\n[dim]Stopped watching.[/dim]")
    return outcome


@click.group()
@click.version_option(version=__version__, prog_name="arbor")
def cli() -> None:
    """arbor: run nested describe/it test files."""


@cli.command()
@click.argument("test_file", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--root",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path),
    help="Project root containing .arbor.yml and the test directory.",
)
@click.option("--tag", "tags", multiple=True, help="Only run blocks with this tag (repeatable).")
@click.option(
    "--randomize/--no-randomize",
    default=None,
    help="Shuffle test order (default from .arbor.yml).",
)
@click.option("--seed", type=int, default=None, help="Seed for --randomize.")
@click.option("--watch", "-w", is_flag=True, help="Rerun changed test files until interrupted.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def run(  # noqa: PLR0913
    ctx: click.Context,
    test_file: Path | None,
    root: Path,
    tags: tuple[str, ...],
    randomize: bool | None,
    seed: int | None,
    *,
    watch: bool,
    verbose: bool,
) -> None:
    """Run TEST_FILE, or every test file under the configured test directory."""
    _configure_logging(verbose=verbose)

    config = load_config(root)
    errors = validate_config(config)
    if errors:
        for error in errors:
            console.print(f"[red]✗[/red] {error}")
        ctx.exit(int(ExitCode.LOAD_ERROR))

    if test_file is not None:
        path = (root / test_file).resolve()
        if not path.is_file():
            console.print(f"[red]✗[/red] File {escape(str(test_file))} could not be accessed.")
            ctx.exit(int(ExitCode.LOAD_ERROR))
        files = [path]
        watcher = TestFileWatcher(path.parent, path.name, config.watch)
    else:
        files = discover_test_files(root, config.discovery.test_dir, config.discovery.pattern)
        if not files:
            console.print(
                f"[yellow]⚠[/yellow] No files matching {config.discovery.pattern} "
                f"in {config.discovery.test_dir}/"
            )
        watcher = TestFileWatcher(
            root / config.discovery.test_dir, config.discovery.pattern, config.watch
        )

    options = _resolve_options(config, tags, randomize, seed)
    dispatcher = EventDispatcher()
    TerminalReporter(console).install(dispatcher)

    outcome = _run_files(files, options, config, dispatcher)
    if watch:
        outcome = _watch_loop(watcher, options, config, dispatcher, outcome)
    ctx.exit(int(outcome.exit_code))


@cli.group("config")
def config_group() -> None:
    """Inspect the .arbor.yml configuration."""


@config_group.command("show")
@click.option(
    "--root",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--json", "as_json", is_flag=True, help="Output JSON instead of YAML.")
def config_show(root: str, *, as_json: bool) -> None:
    """Print the effective configuration."""
    config_dict = asdict(load_config(root))
    config_dict.pop("raw", None)
    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False))


@config_group.command("validate")
@click.option(
    "--root",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.pass_context
def config_validate(ctx: click.Context, root: str) -> None:
    """Check .arbor.yml for invalid values."""
    errors = validate_config(load_config(root))
    if not errors:
        console.print("[green]✓[/green] Configuration is valid")
        return
    for error in errors:
        console.print(f"[red]✗[/red] {error}")
    ctx.exit(1)

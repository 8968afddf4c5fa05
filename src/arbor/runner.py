"""Top-level run entry point: rebuild the tree, load files, execute."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from arbor.builder import BlockTreeBuilder, reset_builder
from arbor.engine import run_parsed_blocks
from arbor.loader import TestFileLoadError, load_test_files
from arbor.models.blocks import DEFAULT_TIMEOUT_MS, Group
from arbor.models.run import RunOptions
from arbor.shared_examples import get_shared_examples

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from arbor.events import EventDispatcher

logger = logging.getLogger(__name__)

_SEED_RANGE = 2**32


class ExitCode(IntEnum):
    """Process exit codes for a run."""

    OK = 0
    FAILURES = 1
    LOAD_ERROR = 2


@dataclass
class RunOutcome:
    """What a single run produced."""

    exit_code: ExitCode
    failed: bool = False
    seed: int | None = None
    """Seed used to shuffle the tree, when randomized."""

    root: Group | None = None
    """The unfiltered tree that was built, ``None`` if loading failed."""

    error: TestFileLoadError | None = None


def reset_state(
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS, *, keep_shared_examples: bool = False
) -> BlockTreeBuilder:
    """Forget every declared block and, unless told otherwise, every shared example.

    Args:
        default_timeout_ms: Time limit given to tests declared from now on.
        keep_shared_examples: Leave the shared example registry as it is, so
            a rerun of a subset of files can still use examples registered by
            files that are not reloaded.

    Returns:
        The fresh builder that ``describe``/``it`` now write to.
    """
    if not keep_shared_examples:
        get_shared_examples().clear()
    return reset_builder(default_timeout_ms)


async def run_once(
    files: Iterable[Path],
    options: RunOptions | None = None,
    *,
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    dispatcher: EventDispatcher | None = None,
    keep_shared_examples: bool = False,
) -> RunOutcome:
    """Build a fresh tree from *files* and run it.

    Load failures end the run before any test executes and are reported
    through the outcome rather than raised. Watch-mode reruns pass
    ``keep_shared_examples=True`` so that reloading only the changed files
    does not lose shared examples registered by the others. Reloaded files
    register their examples again, and the latest registration wins.
    """
    options = options or RunOptions()
    builder = reset_state(default_timeout_ms, keep_shared_examples=keep_shared_examples)

    try:
        modules = load_test_files(files)
    except TestFileLoadError as exc:
        logger.error("%s", exc)
        return RunOutcome(exit_code=ExitCode.LOAD_ERROR, error=exc)
    logger.debug("Loaded %d test file(s)", len(modules))

    seed: int | None = None
    rng: random.Random | None = None
    if options.should_randomize:
        seed = options.seed if options.seed is not None else random.randrange(_SEED_RANGE)
        rng = random.Random(seed)
        logger.info("Randomizing test order with seed %d", seed)

    root = builder.root()
    failed = await run_parsed_blocks(
        root,
        tags=options.tags,
        should_randomize=options.should_randomize,
        rng=rng,
        dispatcher=dispatcher,
    )
    return RunOutcome(
        exit_code=ExitCode.FAILURES if failed else ExitCode.OK,
        failed=failed,
        seed=seed,
        root=root,
    )

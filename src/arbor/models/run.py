"""Options accepted by the top-level run entry point."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RunOptions:
    """Filtering and ordering options for a single run."""

    tags: list[str] | None = None
    """Only run tests and groups carrying one of these tags. ``None`` or empty runs all."""

    should_randomize: bool = False
    """Shuffle sibling order at every level of the tree."""

    seed: int | None = None
    """Seed for the shuffle. Generated per run when ``None``."""

"""arbor: nested describe/it test runner."""

from arbor.assertions import expect
from arbor.dsl import after_each, before_each, describe, it
from arbor.engine import run_parsed_blocks

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "after_each",
    "before_each",
    "describe",
    "expect",
    "it",
    "run_parsed_blocks",
]

"""Test file discovery and loading.

Loading a test file executes it top to bottom, which is what builds the
block tree. Files are executed as fresh modules each time and never cached
in :data:`sys.modules`, so a rerun declares everything again from scratch.
"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import ModuleType

logger = logging.getLogger(__name__)

DEFAULT_TEST_DIR = "test"
DEFAULT_PATTERN = "*_tests.py"


class TestFileLoadError(Exception):
    """Raised when a test file cannot be read or raises while loading."""

    __test__ = False

    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"Failed to load test file {path}: {cause}")
        self.path = path
        self.cause = cause


def discover_test_files(
    project_path: Path,
    test_dir: str = DEFAULT_TEST_DIR,
    pattern: str = DEFAULT_PATTERN,
) -> list[Path]:
    """Find test files matching *pattern* directly inside ``project_path / test_dir``.

    Returns:
        Sorted list of absolute file paths. Empty if the directory is missing.
    """
    directory = (project_path / test_dir).resolve()
    if not directory.is_dir():
        logger.debug("Test directory %s does not exist", directory)
        return []
    return sorted(path for path in directory.glob(pattern) if path.is_file())


def _module_name(path: Path) -> str:
    return f"arbor_test_file_{path.stem}_{abs(hash(str(path)))}"


def load_test_file(path: Path) -> ModuleType:
    """Execute *path* as a module, declaring whatever blocks it contains.

    Raises:
        TestFileLoadError: If the file is missing or raises while executing.
    """
    spec = importlib.util.spec_from_file_location(_module_name(path), path)
    if spec is None or spec.loader is None:
        raise TestFileLoadError(path, ImportError(f"cannot import {path}"))
    module = importlib.util.module_from_spec(spec)
    logger.debug("Loading test file %s", path)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        logger.warning("Test file %s raised while loading: %s", path, exc)
        raise TestFileLoadError(path, exc) from exc
    return module


def load_test_files(paths: Iterable[Path]) -> list[ModuleType]:
    """Load every file in order, stopping at the first failure."""
    return [load_test_file(Path(path)) for path in paths]

"""Polling watcher that reruns test files when they change.

Scans the test directory on each poll, compares modification times against
the previous snapshot, and debounces bursts of edits before reporting the
changed files.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from arbor.config import WatchConfig

logger = logging.getLogger(__name__)


@dataclass
class FileChange:
    """A single file change event."""

    path: Path
    """Absolute path to the changed file."""

    change_type: str
    """Type of change: 'modified', 'created', or 'deleted'."""


@dataclass
class WatchEvent:
    """A batch of debounced changes."""

    changes: list[FileChange] = field(default_factory=list)

    @property
    def rerun_files(self) -> list[Path]:
        """Changed files that still exist, in sorted order."""
        return sorted({change.path for change in self.changes if change.change_type != "deleted"})


class TestFileWatcher:
    """Detects created, modified and deleted test files by polling."""

    __test__ = False

    def __init__(self, directory: Path, pattern: str, config: WatchConfig | None = None) -> None:
        self._directory = directory
        self._pattern = pattern
        self._config = config or WatchConfig()
        self._file_mtimes: dict[Path, float] = {}
        self._pending_changes: list[FileChange] = []
        self._last_change_time: float = 0.0
        self._running: bool = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Take the initial snapshot of file modification times."""
        self._running = True
        self._file_mtimes = self._scan_files()
        logger.info(
            "Watching %d test file(s) in %s",
            len(self._file_mtimes),
            self._directory,
        )

    def stop(self) -> None:
        """Mark the watcher stopped so loops over :attr:`running` end."""
        self._running = False

    def poll(self) -> WatchEvent | None:
        """Return a watch event once changes have settled, otherwise ``None``."""
        new_changes = self._detect_changes(self._scan_files())
        if new_changes:
            self._pending_changes.extend(new_changes)
            self._last_change_time = time.monotonic()

        if not self._pending_changes:
            return None

        if time.monotonic() - self._last_change_time < self._config.debounce_delay:
            return None

        changes = list(self._pending_changes)
        self._pending_changes.clear()
        return WatchEvent(changes=changes)

    def wait_for_event(self) -> WatchEvent:
        """Block, polling every ``poll_interval`` seconds, until changes settle."""
        while True:
            event = self.poll()
            if event is not None:
                return event
            time.sleep(self._config.poll_interval)

    def _scan_files(self) -> dict[Path, float]:
        result: dict[Path, float] = {}
        try:
            for file_path in self._directory.glob(self._pattern):
                if not file_path.is_file():
                    continue
                try:
                    result[file_path.resolve()] = file_path.stat().st_mtime
                except OSError:
                    continue
        except OSError:
            logger.warning("Failed to scan test directory: %s", self._directory)
        return result

    def _detect_changes(self, current: dict[Path, float]) -> list[FileChange]:
        changes: list[FileChange] = []

        for path, mtime in current.items():
            if path not in self._file_mtimes:
                changes.append(FileChange(path=path, change_type="created"))
            elif mtime != self._file_mtimes[path]:
                changes.append(FileChange(path=path, change_type="modified"))

        changes.extend(
            FileChange(path=path, change_type="deleted")
            for path in sorted(set(self._file_mtimes) - set(current))
        )

        self._file_mtimes = dict(current)
        return changes

"""Tests for the polling test file watcher."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

from arbor.config import WatchConfig
from arbor.watcher import FileChange, TestFileWatcher, WatchEvent

_NO_DEBOUNCE = WatchConfig(poll_interval=0.01, debounce_delay=0)


def _touch(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


def _watcher(directory: Path, config: WatchConfig = _NO_DEBOUNCE) -> TestFileWatcher:
    watcher = TestFileWatcher(directory, "*_tests.py", config)
    watcher.start()
    return watcher


class TestWatchEvent:
    def test_rerun_files_skip_deleted_and_dedupe(self, tmp_path: Path) -> None:
        a = tmp_path / "a_tests.py"
        b = tmp_path / "b_tests.py"
        event = WatchEvent(
            changes=[
                FileChange(path=b, change_type="modified"),
                FileChange(path=a, change_type="created"),
                FileChange(path=b, change_type="modified"),
                FileChange(path=tmp_path / "c_tests.py", change_type="deleted"),
            ]
        )

        assert event.rerun_files == [a, b]


class TestTestFileWatcher:
    def test_no_event_without_changes(self, tmp_path: Path) -> None:
        (tmp_path / "a_tests.py").write_text("", encoding="utf-8")
        watcher = _watcher(tmp_path)

        assert watcher.running
        assert watcher.poll() is None

    def test_detects_modification(self, tmp_path: Path) -> None:
        path = tmp_path / "a_tests.py"
        path.write_text("", encoding="utf-8")
        _touch(path, 1_000_000)
        watcher = _watcher(tmp_path)

        _touch(path, 2_000_000)
        event = watcher.poll()

        assert event is not None
        assert event.changes == [FileChange(path=path.resolve(), change_type="modified")]

    def test_detects_creation_and_deletion(self, tmp_path: Path) -> None:
        old = tmp_path / "old_tests.py"
        old.write_text("", encoding="utf-8")
        watcher = _watcher(tmp_path)

        old.unlink()
        new = tmp_path / "new_tests.py"
        new.write_text("", encoding="utf-8")
        event = watcher.poll()

        assert event is not None
        assert {(change.path.name, change.change_type) for change in event.changes} == {
            ("new_tests.py", "created"),
            ("old_tests.py", "deleted"),
        }
        assert event.rerun_files == [new.resolve()]

    def test_ignores_files_not_matching_pattern(self, tmp_path: Path) -> None:
        watcher = _watcher(tmp_path)

        (tmp_path / "helpers.py").write_text("", encoding="utf-8")

        assert watcher.poll() is None

    def test_debounces_until_changes_settle(self, tmp_path: Path) -> None:
        watcher = _watcher(tmp_path, WatchConfig(poll_interval=0.01, debounce_delay=5))
        (tmp_path / "a_tests.py").write_text("", encoding="utf-8")

        with patch("arbor.watcher.time.monotonic", return_value=100.0):
            assert watcher.poll() is None
        with patch("arbor.watcher.time.monotonic", return_value=106.0):
            event = watcher.poll()

        assert event is not None
        assert [change.change_type for change in event.changes] == ["created"]

    def test_wait_for_event_polls_until_change(self, tmp_path: Path) -> None:
        watcher = _watcher(tmp_path)
        created = tmp_path / "a_tests.py"

        def create_on_sleep(_seconds: float) -> None:
            created.write_text("", encoding="utf-8")

        with patch("arbor.watcher.time.sleep", side_effect=create_on_sleep) as sleep:
            event = watcher.wait_for_event()

        sleep.assert_called_once_with(0.01)
        assert event.rerun_files == [created.resolve()]

    def test_stop(self, tmp_path: Path) -> None:
        watcher = _watcher(tmp_path)

        watcher.stop()

        assert not watcher.running

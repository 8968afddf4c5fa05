"""Tests for .arbor.yml loading and validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from arbor.config import CONFIG_FILE_NAME, load_config, validate_config

if TYPE_CHECKING:
    from pathlib import Path


def _write_config(root: Path, content: str) -> None:
    (root / CONFIG_FILE_NAME).write_text(content, encoding="utf-8")


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)

        assert config.root == str(tmp_path.resolve())
        assert config.discovery.test_dir == "test"
        assert config.discovery.pattern == "*_tests.py"
        assert config.execution.default_timeout_ms == 5000
        assert config.execution.randomize is False
        assert config.execution.tags == []
        assert config.watch.poll_interval == 0.5
        assert config.watch.debounce_delay == 0.2
        assert config.raw == {}

    def test_reads_every_section(self, tmp_path: Path) -> None:
        _write_config(
            tmp_path,
            """
discovery:
  test_dir: specs
  pattern: "*_spec.py"
execution:
  default_timeout_ms: 250
  randomize: true
  tags: [fast, unit]
watch:
  poll_interval: 1.5
  debounce_delay: 0
""",
        )

        config = load_config(tmp_path)

        assert config.discovery.test_dir == "specs"
        assert config.discovery.pattern == "*_spec.py"
        assert config.execution.default_timeout_ms == 250
        assert config.execution.randomize is True
        assert config.execution.tags == ["fast", "unit"]
        assert config.watch.poll_interval == 1.5
        assert config.watch.debounce_delay == 0.0

    def test_single_tag_string(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "execution:\n  tags: smoke\n")

        assert load_config(tmp_path).execution.tags == ["smoke"]

    def test_env_vars_are_expanded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ARBOR_TEST_DIR", "suite")
        _write_config(tmp_path, "discovery:\n  test_dir: ${ARBOR_TEST_DIR}\n")

        assert load_config(tmp_path).discovery.test_dir == "suite"

    def test_unset_env_var_expands_to_empty(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("ARBOR_MISSING_VAR", raising=False)
        _write_config(tmp_path, "discovery:\n  pattern: ${ARBOR_MISSING_VAR}\n")

        config = load_config(tmp_path)

        assert config.discovery.pattern == ""
        assert "discovery.pattern must not be empty" in validate_config(config)

    def test_non_mapping_top_level_is_ignored(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "- just\n- a list\n")

        config = load_config(tmp_path)

        assert config.raw == {}
        assert config.discovery.test_dir == "test"

    def test_non_mapping_section_uses_defaults(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "watch: fast\n")

        assert load_config(tmp_path).watch.poll_interval == 0.5


class TestValidateConfig:
    def test_defaults_are_valid(self, tmp_path: Path) -> None:
        assert validate_config(load_config(tmp_path)) == []

    def test_reports_every_problem(self, tmp_path: Path) -> None:
        _write_config(
            tmp_path,
            """
discovery:
  test_dir: ""
execution:
  default_timeout_ms: 0
watch:
  poll_interval: 0
  debounce_delay: -1
""",
        )

        errors = validate_config(load_config(tmp_path))

        assert errors == [
            "discovery.test_dir must not be empty",
            "execution.default_timeout_ms must be positive (got: 0)",
            "watch.poll_interval must be positive (got: 0.0)",
            "watch.debounce_delay must be non-negative (got: -1.0)",
        ]

"""Configuration parsing from ``.arbor.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from arbor.loader import DEFAULT_PATTERN, DEFAULT_TEST_DIR
from arbor.models.blocks import DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".arbor.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    return section if isinstance(section, dict) else {}


@dataclass
class DiscoveryConfig:
    """Where test files are found."""

    test_dir: str = DEFAULT_TEST_DIR
    """Directory, relative to the project root, holding test files."""

    pattern: str = DEFAULT_PATTERN
    """Glob matched against file names inside ``test_dir``."""


@dataclass
class ExecutionConfig:
    """Defaults for how tests run."""

    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    """Time limit applied to tests that do not set their own."""

    randomize: bool = False
    """Shuffle sibling order on every run."""

    tags: list[str] = field(default_factory=list)
    """Only run blocks carrying one of these tags. Empty runs everything."""


@dataclass
class WatchConfig:
    """Polling settings for ``--watch``."""

    poll_interval: float = 0.5
    """Seconds between filesystem polls."""

    debounce_delay: float = 0.2
    """Seconds to wait after the last change before rerunning."""


@dataclass
class ArborConfig:
    """Complete ``.arbor.yml`` configuration."""

    root: str
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    raw: dict[str, Any] = field(default_factory=dict)


def _parse_discovery_config(raw: dict[str, Any]) -> DiscoveryConfig:
    discovery_raw = _section(raw, "discovery")
    return DiscoveryConfig(
        test_dir=str(discovery_raw.get("test_dir", DEFAULT_TEST_DIR)),
        pattern=str(discovery_raw.get("pattern", DEFAULT_PATTERN)),
    )


def _parse_execution_config(raw: dict[str, Any]) -> ExecutionConfig:
    execution_raw = _section(raw, "execution")
    tags_raw = execution_raw.get("tags", [])
    if isinstance(tags_raw, str):
        tags_raw = [tags_raw]
    return ExecutionConfig(
        default_timeout_ms=int(execution_raw.get("default_timeout_ms", DEFAULT_TIMEOUT_MS)),
        randomize=bool(execution_raw.get("randomize", False)),
        tags=[str(tag) for tag in tags_raw] if isinstance(tags_raw, list) else [],
    )


def _parse_watch_config(raw: dict[str, Any]) -> WatchConfig:
    watch_raw = _section(raw, "watch")
    return WatchConfig(
        poll_interval=float(watch_raw.get("poll_interval", 0.5)),
        debounce_delay=float(watch_raw.get("debounce_delay", 0.2)),
    )


def load_config(root: str | Path) -> ArborConfig:
    """Load ``.arbor.yml`` from *root*, falling back to defaults for anything missing."""
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILE_NAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: top level is not a mapping", config_file)

    return ArborConfig(
        root=str(root_path),
        discovery=_parse_discovery_config(raw),
        execution=_parse_execution_config(raw),
        watch=_parse_watch_config(raw),
        raw=raw,
    )


def validate_config(config: ArborConfig) -> list[str]:
    """Return a list of problems with *config*; empty when it is valid."""
    errors: list[str] = []

    if not config.discovery.test_dir:
        errors.append("discovery.test_dir must not be empty")
    if not config.discovery.pattern:
        errors.append("discovery.pattern must not be empty")

    if config.execution.default_timeout_ms <= 0:
        errors.append(
            f"execution.default_timeout_ms must be positive "
            f"(got: {config.execution.default_timeout_ms})"
        )

    if config.watch.poll_interval <= 0:
        errors.append(f"watch.poll_interval must be positive (got: {config.watch.poll_interval})")
    if config.watch.debounce_delay < 0:
        errors.append(
            f"watch.debounce_delay must be non-negative (got: {config.watch.debounce_delay})"
        )

    return errors

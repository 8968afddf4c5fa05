"""Tests for the shared example registry."""

from __future__ import annotations

import pytest

from arbor.shared_examples import (
    SharedExampleNotFoundError,
    SharedExampleRegistry,
    get_shared_examples,
)


def _first() -> None:
    return None


def _second() -> None:
    return None


def test_register_and_resolve() -> None:
    registry = SharedExampleRegistry()
    registry.register("a stack", _first)

    assert registry.resolve("a stack") is _first
    assert "a stack" in registry
    assert len(registry) == 1


def test_re_registering_replaces_body() -> None:
    registry = SharedExampleRegistry()
    registry.register("a stack", _first)
    registry.register("a stack", _second)

    assert registry.resolve("a stack") is _second
    assert len(registry) == 1


def test_resolve_unknown_name() -> None:
    registry = SharedExampleRegistry()

    with pytest.raises(SharedExampleNotFoundError) as exc_info:
        registry.resolve("nope")

    assert exc_info.value.name == "nope"
    assert isinstance(exc_info.value, LookupError)
    assert "nope" in str(exc_info.value)


def test_clear() -> None:
    registry = SharedExampleRegistry()
    registry.register("a", _first)

    registry.clear()

    assert "a" not in registry


def test_global_registry_is_shared() -> None:
    assert get_shared_examples() is get_shared_examples()

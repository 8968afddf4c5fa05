"""Reporters that turn engine events into output."""

from __future__ import annotations

from arbor.reporters.terminal import TerminalReporter

__all__ = ["TerminalReporter"]

"""Data models for arbor."""

from arbor.models.blocks import Block, Group, Test, is_test
from arbor.models.run import RunOptions

__all__ = [
    "Block",
    "Group",
    "RunOptions",
    "Test",
    "is_test",
]

"""Tree transforms applied to the root group before a run.

Every transform returns a new tree and leaves its input untouched, so they
compose in any pipeline. :func:`apply_filters` runs them in the fixed
order focus, tags, randomize.
"""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import TYPE_CHECKING

from arbor.models.blocks import Block, Group, Test

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


def _contains_focus(block: Block) -> bool:
    if block.focus:
        return True
    if isinstance(block, Test):
        return False
    return any(_contains_focus(child) for child in block.children)


def _narrow_to_focus(block: Block) -> Block | None:
    if block.focus:
        return block
    if isinstance(block, Test):
        return None
    children = tuple(
        narrowed
        for narrowed in (_narrow_to_focus(child) for child in block.children)
        if narrowed is not None
    )
    if not children:
        return None
    return replace(block, children=children)


def focused_only(root: Group) -> Group:
    """Keep only focused blocks and the groups leading to them.

    A focused group keeps its whole subtree. If nothing is focused the
    tree is returned unchanged.
    """
    if not any(_contains_focus(child) for child in root.children):
        return root
    children = tuple(
        narrowed
        for narrowed in (_narrow_to_focus(child) for child in root.children)
        if narrowed is not None
    )
    logger.debug(
        "Focus narrowing kept %d of %d top-level blocks", len(children), len(root.children)
    )
    return replace(root, children=children)


def _narrow_to_tags(block: Block, wanted: frozenset[str]) -> Block | None:
    if block.tags & wanted:
        return block
    if isinstance(block, Test):
        return None
    children = tuple(
        narrowed
        for narrowed in (_narrow_to_tags(child, wanted) for child in block.children)
        if narrowed is not None
    )
    if not children:
        return None
    return replace(block, children=children)


def tagged_only(tags: Iterable[str] | None, root: Group) -> Group:
    """Keep blocks tagged with any of *tags*, plus the groups leading to them.

    A matching group keeps its whole subtree. With no tags the tree is
    returned unchanged. The root itself is always kept, possibly empty.
    """
    wanted = frozenset(tags or ())
    if not wanted:
        return root
    children = tuple(
        narrowed
        for narrowed in (_narrow_to_tags(child, wanted) for child in root.children)
        if narrowed is not None
    )
    logger.debug("Tag narrowing to %s kept %d top-level blocks", sorted(wanted), len(children))
    return replace(root, children=children)


def _shuffled(group: Group, rng: random.Random) -> Group:
    children = [
        _shuffled(child, rng) if isinstance(child, Group) else child for child in group.children
    ]
    rng.shuffle(children)
    return replace(group, children=tuple(children))


def randomize_blocks(
    should_randomize: bool, root: Group, rng: random.Random | None = None
) -> Group:
    """Shuffle the children of every group independently.

    Which blocks exist never changes, only their order among siblings.
    """
    if not should_randomize:
        return root
    return _shuffled(root, rng or random.Random())


def apply_filters(
    root: Group,
    *,
    tags: Iterable[str] | None = None,
    should_randomize: bool = False,
    rng: random.Random | None = None,
) -> Group:
    """Run focus, tag and randomize transforms in that order."""
    filtered = focused_only(root)
    filtered = tagged_only(tags, filtered)
    return randomize_blocks(should_randomize, filtered, rng)

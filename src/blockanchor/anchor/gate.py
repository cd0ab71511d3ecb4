"""Anchor gate — decides which blocks are anchored."""

from __future__ import annotations

from typing import Optional

from blockanchor.config import AnchorConfig
from blockanchor.models.block import Block


def should_anchor(config: AnchorConfig, block: Optional[Block]) -> bool:
    """Return True if ``block`` is due for anchoring under ``config``.

    Anchoring must be enabled, the block present, and its number a
    multiple of the anchor period.
    """
    if not config.enabled:
        return False
    if block is None:
        return False
    return block.number % config.period == 0

"""Window aggregation — summarizes the trailing anchor period of a block.

For a block at height ``h`` and period ``p`` the window is the inclusive
range ``[max(0, h - p + 1), h]``. The summary carries the block's own
header hashes, the number of blocks in the window, and the total number
of transactions across it.

The window is recomputed from block storage on every call. Anchoring runs
once per period, so the O(period) lookups are paid at most once per
``period`` blocks and the aggregator carries no state between calls.
"""

from __future__ import annotations

from typing import Optional

from blockanchor.anchor.interfaces import BlockChain
from blockanchor.models.anchoring import WindowSummary
from blockanchor.models.block import Block


def window_start(block_number: int, period: int) -> int:
    """First height of the window ending at ``block_number``."""
    if period < 1:
        raise ValueError(f"Anchor period must be >= 1, got {period}")
    if block_number >= period:
        return block_number - period + 1
    return 0


def summarize(block: Block, period: int, chain: BlockChain) -> Optional[WindowSummary]:
    """Summarize the window of ``period`` blocks ending at ``block``.

    Earlier blocks of the window are fetched from ``chain`` in ascending
    order. Returns None if any of them is unavailable; a partial count is
    never produced.
    """
    number = block.number
    start = window_start(number, period)

    tx_count = block.tx_count
    for height in range(start, number):
        past = chain.get_block_by_number(height)
        if past is None:
            return None
        tx_count += past.tx_count

    header = block.header
    return WindowSummary(
        block_hash=header.hash,
        tx_hash=header.tx_hash,
        parent_hash=header.parent_hash,
        receipt_hash=header.receipt_hash,
        state_root_hash=header.root,
        block_number=number,
        block_count=number - start + 1,
        tx_count=tx_count,
    )

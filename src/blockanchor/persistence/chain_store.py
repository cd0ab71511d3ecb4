"""JSON block store — serves blocks by height from an exported chain file.

The file holds a JSON array of block objects (or an object with a
``blocks`` array)::

    [{"number": 0, "hash": "0x..", "parentHash": "0x..", "txHash": "0x..",
      "receiptHash": "0x..", "stateRootHash": "0x..", "transactions": 3}, ...]

Used by the CLI and for replaying exported chain segments.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional

from blockanchor.models.block import Block


class JsonBlockStore:
    """In-memory block index with optional loading from a JSON file."""

    def __init__(self, blocks: Iterable[Block] = ()) -> None:
        self._blocks: dict[int, Block] = {}
        for block in blocks:
            self.add(block)

    @classmethod
    def from_file(cls, path: Path) -> JsonBlockStore:
        """Load blocks from a JSON file. Raises ValueError on malformed input."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        entries: Any = raw.get("blocks") if isinstance(raw, dict) else raw
        if not isinstance(entries, list):
            raise ValueError(f"Block file {path} must contain a list of blocks")
        return cls(Block.from_dict(entry) for entry in entries)

    def add(self, block: Block) -> None:
        """Add a block. Raises ValueError if its height is already taken."""
        if block.number in self._blocks:
            raise ValueError(f"Duplicate block number: {block.number}")
        self._blocks[block.number] = block

    def get_block_by_number(self, number: int) -> Optional[Block]:
        return self._blocks.get(number)

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, number: object) -> bool:
        return number in self._blocks

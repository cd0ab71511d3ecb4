"""Anchor state store — persists the last anchored block number.

The anchoring client accepts this store but does not consult it; it is
maintained by operators (see ``blockanchor watermark``).

File layout: a single JSON object ``{"anchored_block_number": <int>}``.
Writes are atomic (temp file + os.replace).
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional


class AnchorStateStore:
    """Watermark store with optional file persistence.

    Without a storage path the watermark lives in memory only.
    """

    KEY = "anchored_block_number"

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._anchored = 0

        if storage_path and storage_path.exists():
            self._anchored = self._load_from_file(storage_path)

    def write_anchored_block_number(self, block_number: int) -> None:
        if block_number < 0:
            raise ValueError(f"Block number must be non-negative, got {block_number}")
        self._anchored = block_number
        if self._storage_path:
            self._write_to_file(self._storage_path, block_number)

    def read_anchored_block_number(self) -> int:
        return self._anchored

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load_from_file(self, path: Path) -> int:
        data = json.loads(path.read_text(encoding="utf-8"))
        value = data.get(self.KEY, 0) if isinstance(data, dict) else None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"Corrupt anchor state in {path}")
        return value

    def _write_to_file(self, path: Path, block_number: int) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps({self.KEY: block_number}, sort_keys=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), suffix=".tmp", prefix=".anchor_state_"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

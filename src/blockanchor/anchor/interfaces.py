"""Collaborator contracts injected into the anchoring client.

The host node supplies its block storage and (optionally) a watermark
store; the HTTP transport defaults to a ``requests.Session``.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import requests

from blockanchor.models.block import Block


@runtime_checkable
class BlockChain(Protocol):
    """Block retrieval by height."""

    def get_block_by_number(self, number: int) -> Optional[Block]:
        """Return the block at ``number``, or None if it is not available."""
        ...


@runtime_checkable
class AnchorDB(Protocol):
    """Persistent watermark of the last anchored block number."""

    def write_anchored_block_number(self, block_number: int) -> None:
        ...

    def read_anchored_block_number(self) -> int:
        ...


@runtime_checkable
class HTTPClient(Protocol):
    """Sends a prepared HTTP request. Satisfied by ``requests.Session``."""

    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        ...

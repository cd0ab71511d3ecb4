"""File-backed adapters for the anchoring collaborators."""

from blockanchor.persistence.anchor_state import AnchorStateStore
from blockanchor.persistence.chain_store import JsonBlockStore

__all__ = ["AnchorStateStore", "JsonBlockStore"]

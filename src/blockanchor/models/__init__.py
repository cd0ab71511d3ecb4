"""Core data models for blockanchor."""

from blockanchor.models.anchoring import (
    AnchorResult,
    AnchorStatus,
    Payload,
    ServiceResponse,
    WindowSummary,
)
from blockanchor.models.block import Block, BlockHeader, Transaction

__all__ = [
    "AnchorResult",
    "AnchorStatus",
    "Payload",
    "ServiceResponse",
    "WindowSummary",
    "Block",
    "BlockHeader",
    "Transaction",
]

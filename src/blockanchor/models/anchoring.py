"""Anchoring record models.

A WindowSummary condenses the trailing ``period`` blocks ending at an
anchored block. A Payload is the summary plus its idempotency ``id``, in
the shape the anchoring service ingests. ServiceResponse is the service's
reply, and AnchorResult is the typed outcome of one anchoring attempt.

All records are immutable once constructed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from web3 import Web3

if TYPE_CHECKING:
    from blockanchor.errors import AnchorError

# The only success sentinel defined by the anchoring service contract.
CODE_OK = 0


@dataclass(frozen=True)
class WindowSummary:
    """Header hashes of the anchored block plus counters over its window."""
    block_hash: bytes
    tx_hash: bytes
    parent_hash: bytes
    receipt_hash: bytes
    state_root_hash: bytes
    block_number: int
    block_count: int
    tx_count: int


@dataclass(frozen=True)
class Payload:
    """A WindowSummary keyed by the decimal string of its block number."""
    id: str
    summary: WindowSummary

    def to_wire(self) -> dict[str, Any]:
        """Render the JSON object the anchoring service expects."""
        s = self.summary
        return {
            "id": self.id,
            "blockHash": Web3.to_hex(s.block_hash),
            "txHash": Web3.to_hex(s.tx_hash),
            "parentHash": Web3.to_hex(s.parent_hash),
            "receiptHash": Web3.to_hex(s.receipt_hash),
            "stateRootHash": Web3.to_hex(s.state_root_hash),
            "blockNumber": s.block_number,
            "blockCount": s.block_count,
            "txCount": s.tx_count,
        }


@dataclass(frozen=True)
class ServiceResponse:
    """Decoded reply of the anchoring service.

    ``decoded`` is False when the body could not be decoded and the
    zero value was substituted. The zero value's code equals CODE_OK.
    """
    code: int = CODE_OK
    result: Any = None
    decoded: bool = True

    @property
    def ok(self) -> bool:
        return self.code == CODE_OK

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "result": self.result}


class AnchorStatus(str, enum.Enum):
    """Outcome of a periodic anchoring attempt."""
    SKIPPED = "skipped"
    ANCHORED = "anchored"
    FAILED = "failed"


@dataclass(frozen=True)
class AnchorResult:
    """Result of an anchoring attempt."""
    status: AnchorStatus
    block_number: Optional[int] = None
    payload: Optional[Payload] = None
    response: Optional[ServiceResponse] = None
    error: Optional[AnchorError] = None

    @property
    def success(self) -> bool:
        return self.status == AnchorStatus.ANCHORED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "block_number": self.block_number,
            "payload": self.payload.to_wire() if self.payload else None,
            "response": self.response.to_dict() if self.response else None,
            "error": str(self.error) if self.error else None,
        }

"""Block model — the read-only view of chain data the anchoring client needs.

The host node owns its own block representation. This module defines the
minimal immutable shape the anchoring logic reads: a header carrying the
height and the five root/link hashes, plus the ordered transactions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from web3 import Web3

HASH_LENGTH = 32
EMPTY_HASH = b"\x00" * HASH_LENGTH


def to_hash(value: bytes | str | int) -> bytes:
    """Coerce a hex string, integer or raw bytes to a 32-byte hash.

    Shorter values are left-padded with zeros, longer ones keep their
    rightmost 32 bytes.
    """
    if isinstance(value, str):
        raw = bytes(Web3.to_bytes(hexstr=value))
    elif isinstance(value, int):
        raw = bytes(Web3.to_bytes(value))
    else:
        raw = bytes(value)
    if len(raw) >= HASH_LENGTH:
        return raw[-HASH_LENGTH:]
    return raw.rjust(HASH_LENGTH, b"\x00")


@dataclass(frozen=True)
class Transaction:
    """A transaction as seen by the anchoring client. Only its presence counts."""
    tx_hash: bytes = EMPTY_HASH
    data: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class BlockHeader:
    """Header fields copied into an anchor summary."""
    number: int
    hash: bytes = EMPTY_HASH
    parent_hash: bytes = EMPTY_HASH
    tx_hash: bytes = EMPTY_HASH
    receipt_hash: bytes = EMPTY_HASH
    root: bytes = EMPTY_HASH

    def __post_init__(self) -> None:
        if self.number < 0:
            raise ValueError(f"Block number must be non-negative, got {self.number}")


@dataclass(frozen=True)
class Block:
    """An immutable block: header plus ordered transactions."""
    header: BlockHeader
    transactions: tuple[Transaction, ...] = ()

    @property
    def number(self) -> int:
        return self.header.number

    @property
    def hash(self) -> bytes:
        return self.header.hash

    @property
    def tx_count(self) -> int:
        return len(self.transactions)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Block:
        """Build a block from its JSON form.

        Hashes are 0x-prefixed hex strings and may be omitted (zero hash).
        ``transactions`` is either a list of objects/hashes or an integer
        transaction count.
        """
        header = BlockHeader(
            number=int(data["number"]),
            hash=to_hash(data.get("hash", EMPTY_HASH)),
            parent_hash=to_hash(data.get("parentHash", EMPTY_HASH)),
            tx_hash=to_hash(data.get("txHash", EMPTY_HASH)),
            receipt_hash=to_hash(data.get("receiptHash", EMPTY_HASH)),
            root=to_hash(data.get("stateRootHash", EMPTY_HASH)),
        )

        raw_txs = data.get("transactions", [])
        if isinstance(raw_txs, int):
            txs = tuple(Transaction() for _ in range(raw_txs))
        else:
            txs = tuple(_transaction_from_json(tx) for tx in raw_txs)
        return Block(header=header, transactions=txs)


def _transaction_from_json(value: Any) -> Transaction:
    if isinstance(value, str):
        return Transaction(tx_hash=to_hash(value))
    if isinstance(value, dict):
        tx_hash = value.get("hash")
        return Transaction(
            tx_hash=to_hash(tx_hash) if tx_hash else EMPTY_HASH,
            data=dict(value),
        )
    raise ValueError(f"Unsupported transaction entry: {value!r}")

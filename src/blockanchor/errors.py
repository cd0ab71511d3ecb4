"""Anchoring error taxonomy.

Skipping a block at the gate is not an error. Everything that goes wrong
after the gate admits a block is an AnchorError carrying the block number.
"""

from __future__ import annotations

from typing import Any, Optional


class AnchorError(Exception):
    """Base class for failures of a single anchoring attempt."""

    def __init__(self, message: str, block_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.block_number = block_number


class AggregationUnavailable(AnchorError):
    """A block inside the trailing window could not be retrieved."""

    def __init__(self, block_number: int, period: int) -> None:
        super().__init__(
            f"not found block in anchor window of block {block_number} "
            f"(period {period})",
            block_number,
        )
        self.period = period


class TransportFailure(AnchorError):
    """The request could not be built, sent, or its reply read."""


class ServiceRejection(AnchorError):
    """The anchoring service answered with a nonzero status code."""

    def __init__(self, code: int, result: Any = None, block_number: Optional[int] = None) -> None:
        super().__init__(f"error code {code}", block_number)
        self.code = code
        self.result = result


class ConfigError(ValueError):
    """Anchoring configuration is missing or malformed."""

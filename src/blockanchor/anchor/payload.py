"""Payload construction for the anchoring service."""

from __future__ import annotations

from typing import Any

from blockanchor.models.anchoring import Payload, WindowSummary


def build_payload(summary: WindowSummary) -> Payload:
    """Wrap a summary with its ``id``: the decimal string of its block number.

    The service deduplicates on ``id``, so re-anchoring a height replaces
    rather than duplicates the earlier record.
    """
    return Payload(id=str(summary.block_number), summary=summary)


def build_request_body(operator: str, payload: Payload) -> dict[str, Any]:
    """The request envelope: operator address plus the wire payload."""
    return {
        "operator": operator,
        "Payload": payload.to_wire(),
    }

"""Anchoring pipeline — gate, window aggregation, payload and client."""

from blockanchor.anchor.client import AnchorClient
from blockanchor.anchor.gate import should_anchor
from blockanchor.anchor.payload import build_payload
from blockanchor.anchor.window import summarize

__all__ = ["AnchorClient", "should_anchor", "build_payload", "summarize"]

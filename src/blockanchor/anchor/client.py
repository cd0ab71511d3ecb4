"""Anchor client — anchors periodic blocks to the external anchoring service.

For every block the host node finalizes it calls
``AnchorClient.anchor_periodic_block``. Blocks that pass the gate are
summarized over their trailing window, wrapped into a payload, and POSTed
to the service as::

    {"operator": "<address>", "Payload": {"id": "<height>", ...}}

with an ``X-Krn`` route-key header and HTTP basic authentication. The
service answers ``{"code": <int>, "result": <any>}``; code 0 is success.

Failures are never fatal to the host: the periodic entry point logs them
and returns a FAILED result. There is no retry, the next opportunity is
one period later. The watermark store is held but not consulted, so
nothing is resumed after a restart.

Usage:
    client = AnchorClient(config, db, chain)
    result = client.anchor_periodic_block(block)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import requests
from requests.auth import HTTPBasicAuth

from blockanchor.anchor.gate import should_anchor
from blockanchor.anchor.interfaces import AnchorDB, BlockChain, HTTPClient
from blockanchor.anchor.payload import build_payload, build_request_body
from blockanchor.anchor.window import summarize
from blockanchor.config import AnchorConfig
from blockanchor.errors import (
    AggregationUnavailable,
    AnchorError,
    ServiceRejection,
    TransportFailure,
)
from blockanchor.models.anchoring import (
    AnchorResult,
    AnchorStatus,
    Payload,
    ServiceResponse,
)
from blockanchor.models.block import Block

logger = logging.getLogger(__name__)

ROUTE_KEY_HEADER = "X-Krn"


class AnchorClient:
    """Orchestrates gate, aggregation, payload building and transmission."""

    def __init__(
        self,
        config: AnchorConfig,
        db: Optional[AnchorDB],
        chain: BlockChain,
        client: Optional[HTTPClient] = None,
    ) -> None:
        self._config = config
        self._db = db
        self._chain = chain
        self._client = client if client is not None else requests.Session()

    @property
    def config(self) -> AnchorConfig:
        return self._config

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def anchor_periodic_block(self, block: Optional[Block]) -> AnchorResult:
        """Anchor ``block`` if it is due. Never raises AnchorError.

        Returns SKIPPED when the gate rejects the block, FAILED (with the
        error attached) when anchoring was attempted and failed.
        """
        if not should_anchor(self._config, block):
            if block is None and self._config.enabled:
                logger.error("Cannot anchor a nil block")
            return AnchorResult(
                status=AnchorStatus.SKIPPED,
                block_number=block.number if block is not None else None,
            )

        try:
            return self.anchor_block(block)
        except AnchorError as e:
            logger.warning("Failed to anchor block %d: %s", block.number, e)
            return AnchorResult(
                status=AnchorStatus.FAILED,
                block_number=block.number,
                error=e,
            )

    def anchor_block(self, block: Block) -> AnchorResult:
        """Summarize, build and send the anchor for ``block``.

        The caller is responsible for gating. Raises AggregationUnavailable,
        TransportFailure or ServiceRejection.
        """
        summary = summarize(block, self._config.period, self._chain)
        if summary is None:
            raise AggregationUnavailable(block.number, self._config.period)

        payload = build_payload(summary)
        response = self.send_request(payload)

        if not response.ok:
            logger.debug(
                "Anchoring service rejected block %d: %s",
                block.number, json.dumps(response.to_dict(), default=str),
            )
            raise ServiceRejection(response.code, response.result, block.number)

        logger.info("Anchored block %d", block.number)
        return AnchorResult(
            status=AnchorStatus.ANCHORED,
            block_number=block.number,
            payload=payload,
            response=response,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def build_request(self, payload: Payload) -> requests.PreparedRequest:
        """Prepare the authenticated POST for ``payload``."""
        block_number = payload.summary.block_number
        try:
            body = json.dumps(build_request_body(self._config.operator, payload))
            request = requests.Request(
                "POST",
                self._config.url,
                data=body.encode("utf-8"),
                headers={
                    "Content-Type": "application/json",
                    ROUTE_KEY_HEADER: self._config.xkrn,
                },
                auth=HTTPBasicAuth(self._config.user, self._config.password),
            )
            return request.prepare()
        except (requests.RequestException, TypeError, ValueError) as e:
            raise TransportFailure(
                f"cannot build anchor request: {e}", block_number
            ) from e

    def send_request(self, payload: Payload) -> ServiceResponse:
        """Send one request for ``payload`` and decode the reply."""
        block_number = payload.summary.block_number
        prepared = self.build_request(payload)

        try:
            response = self._client.send(prepared, timeout=self._config.timeout)
        except requests.RequestException as e:
            raise TransportFailure(f"anchor request failed: {e}", block_number) from e

        try:
            content = response.content
        except requests.RequestException as e:
            raise TransportFailure(f"cannot read anchor response: {e}", block_number) from e
        finally:
            response.close()

        decoded = decode_response(content)
        if not decoded.decoded:
            if self._config.strict_decode:
                raise TransportFailure(
                    "undecodable anchoring service response", block_number
                )
            logger.debug(
                "Undecodable anchoring service response for block %d", block_number
            )
        return decoded


def decode_response(content: Optional[bytes]) -> ServiceResponse:
    """Decode a service reply body.

    Only the first JSON value of the body is read; trailing data is
    ignored. Keys match case-insensitively, an exact ``code``/``result``
    key taking precedence. A body that is not a JSON object with an
    integer ``code`` yields the zero value ``ServiceResponse(code=0)``
    marked ``decoded=False``. An object without ``code`` decodes to code 0.
    """
    try:
        text = (content or b"").decode("utf-8").lstrip()
        body, _ = json.JSONDecoder().raw_decode(text)
    except (TypeError, ValueError):
        return ServiceResponse(decoded=False)

    if not isinstance(body, dict):
        return ServiceResponse(decoded=False)

    code = _lookup(body, "code")
    if code is None:
        code = 0
    elif isinstance(code, bool) or not isinstance(code, int):
        return ServiceResponse(decoded=False)
    return ServiceResponse(code=code, result=_lookup(body, "result"))


def _lookup(body: dict[str, Any], key: str) -> Any:
    if key in body:
        return body[key]
    for name, value in body.items():
        if name.lower() == key:
            return value
    return None

"""Tests for the anchor client — proves the request/response protocol.

All tests use a mock transport; no anchoring service is required.
"""

import base64
import json
import logging
from unittest.mock import MagicMock

import pytest
import requests
from web3 import Web3

from blockanchor.anchor.client import AnchorClient, decode_response
from blockanchor.config import AnchorConfig
from blockanchor.errors import (
    AggregationUnavailable,
    AnchorError,
    ServiceRejection,
    TransportFailure,
)
from blockanchor.models.anchoring import AnchorStatus
from blockanchor.models.block import Block, BlockHeader, Transaction
from blockanchor.persistence.anchor_state import AnchorStateStore
from blockanchor.persistence.chain_store import JsonBlockStore

URL = "http://anchor.example.com/v1/anchor"
XKRN = "krn:1001:anchor:test:operator-pool:op1"
USER = "78ab9116689659321aaf472aa154eac7dd7a99c6"
PASSWORD = "403e0397d51a823cd59b7edcb212788c8599dd7e"
OPERATOR = "0x1552f52d459b713e0c4558e66c8c773a75615fa8"


def _hash(n: int) -> bytes:
    return n.to_bytes(32, "big")


def _block(number: int, tx_count: int) -> Block:
    header = BlockHeader(
        number=number,
        hash=_hash(number + 1),
        parent_hash=_hash(number),
        tx_hash=_hash(0xAA),
        receipt_hash=_hash(0xBB),
        root=_hash(0xCC),
    )
    return Block(header=header, transactions=tuple(Transaction() for _ in range(tx_count)))


def _response(body, status: int = 200) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return resp


def _config(period: int = 1, **overrides) -> AnchorConfig:
    values = dict(
        enabled=True, period=period, url=URL, xkrn=XKRN,
        user=USER, password=PASSWORD, operator=OPERATOR,
    )
    values.update(overrides)
    return AnchorConfig(**values)


@pytest.fixture
def chain() -> JsonBlockStore:
    return JsonBlockStore(_block(n, n % 4) for n in range(20))


@pytest.fixture
def transport() -> MagicMock:
    mock = MagicMock(spec=requests.Session)
    mock.send.return_value = _response({"code": 0, "result": {"status": "ok"}})
    return mock


def _client(chain, transport, **config) -> AnchorClient:
    return AnchorClient(_config(**config), AnchorStateStore(), chain, client=transport)


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------

class TestRequest:
    def test_single_post(self, chain, transport) -> None:
        _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        assert transport.send.call_count == 1
        prepared = transport.send.call_args[0][0]
        assert prepared.method == "POST"
        assert prepared.url == URL

    def test_headers_and_basic_auth(self, chain, transport) -> None:
        _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        prepared = transport.send.call_args[0][0]
        assert prepared.headers["Content-Type"] == "application/json"
        assert prepared.headers["X-Krn"] == XKRN
        expected = base64.b64encode(f"{USER}:{PASSWORD}".encode()).decode()
        assert prepared.headers["Authorization"] == f"Basic {expected}"

    def test_body_envelope(self, chain, transport) -> None:
        _client(chain, transport, period=4).anchor_block(chain.get_block_by_number(8))
        body = json.loads(transport.send.call_args[0][0].body)
        assert body["operator"] == OPERATOR.lower()
        payload = body["Payload"]
        assert payload["id"] == "8"
        assert payload["blockNumber"] == 8
        assert payload["blockCount"] == 4
        # heights 5..8 carry 1, 2, 3, 0 transactions
        assert payload["txCount"] == 6
        assert payload["blockHash"] == Web3.to_hex(_hash(9))
        assert payload["parentHash"] == Web3.to_hex(_hash(8))
        assert payload["txHash"] == Web3.to_hex(_hash(0xAA))
        assert payload["receiptHash"] == Web3.to_hex(_hash(0xBB))
        assert payload["stateRootHash"] == Web3.to_hex(_hash(0xCC))

    def test_timeout_passed_to_transport(self, chain, transport) -> None:
        _client(chain, transport, timeout=5.0).anchor_block(chain.get_block_by_number(1))
        assert transport.send.call_args.kwargs["timeout"] == 5.0

    def test_timeout_can_be_disabled(self, chain, transport) -> None:
        _client(chain, transport, timeout=None).anchor_block(chain.get_block_by_number(1))
        assert transport.send.call_args.kwargs["timeout"] is None


# ---------------------------------------------------------------------------
# Outcome classification
# ---------------------------------------------------------------------------

class TestAnchorBlock:
    def test_success(self, chain, transport) -> None:
        result = _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        assert result.status == AnchorStatus.ANCHORED
        assert result.success
        assert result.block_number == 5
        assert result.payload.id == "5"
        assert result.response.code == 0
        assert result.response.result == {"status": "ok"}

    def test_service_rejection(self, chain, transport) -> None:
        transport.send.return_value = _response({"code": 42, "result": "bad operator"})
        with pytest.raises(ServiceRejection) as exc_info:
            _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        assert exc_info.value.code == 42
        assert exc_info.value.result == "bad operator"
        assert exc_info.value.block_number == 5
        assert "error code 42" in str(exc_info.value)

    def test_http_status_not_consulted(self, chain, transport) -> None:
        """Classification is by body code only."""
        transport.send.return_value = _response({"code": 0}, status=500)
        result = _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        assert result.success

    def test_transport_error(self, chain, transport) -> None:
        transport.send.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(TransportFailure, match="connection refused") as exc_info:
            _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        assert transport.send.call_count == 1
        assert exc_info.value.block_number == 5
        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)

    def test_timeout_is_transport_failure(self, chain, transport) -> None:
        transport.send.side_effect = requests.Timeout("read timed out")
        with pytest.raises(TransportFailure):
            _client(chain, transport).anchor_block(chain.get_block_by_number(5))

    def test_missing_window_block(self, transport) -> None:
        chain = JsonBlockStore(_block(n, 1) for n in range(10) if n != 7)
        with pytest.raises(AggregationUnavailable) as exc_info:
            _client(chain, transport, period=5).anchor_block(chain.get_block_by_number(9))
        assert exc_info.value.block_number == 9
        assert exc_info.value.period == 5
        transport.send.assert_not_called()

    def test_all_failures_share_base_class(self) -> None:
        for cls in (AggregationUnavailable, TransportFailure, ServiceRejection):
            assert issubclass(cls, AnchorError)

    def test_end_to_end_single_block_window(self, transport) -> None:
        """Period 1, height 5, three transactions: the window is the block alone."""
        block = _block(5, 3)
        result = _client(JsonBlockStore(), transport).anchor_block(block)
        payload = result.payload
        assert payload.summary.block_count == 1
        assert payload.summary.tx_count == 3
        assert payload.id == "5"


# ---------------------------------------------------------------------------
# Periodic entry point
# ---------------------------------------------------------------------------

class TestAnchorPeriodicBlock:
    def test_disabled_is_noop(self, chain, transport) -> None:
        client = _client(chain, transport, enabled=False)
        result = client.anchor_periodic_block(chain.get_block_by_number(0))
        assert result.status == AnchorStatus.SKIPPED
        transport.send.assert_not_called()

    def test_nil_block_is_noop(self, chain, transport) -> None:
        result = _client(chain, transport).anchor_periodic_block(None)
        assert result.status == AnchorStatus.SKIPPED
        assert result.block_number is None
        transport.send.assert_not_called()

    def test_nil_block_logged_at_error(self, chain, transport, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="blockanchor.anchor.client"):
            _client(chain, transport).anchor_periodic_block(None)
        assert "Cannot anchor a nil block" in caplog.text

    def test_off_period_is_noop(self, chain, transport) -> None:
        result = _client(chain, transport, period=4).anchor_periodic_block(chain.get_block_by_number(6))
        assert result.status == AnchorStatus.SKIPPED
        assert result.block_number == 6
        transport.send.assert_not_called()

    def test_due_block_is_anchored(self, chain, transport) -> None:
        result = _client(chain, transport, period=4).anchor_periodic_block(chain.get_block_by_number(8))
        assert result.status == AnchorStatus.ANCHORED
        assert transport.send.call_count == 1

    def test_only_due_blocks_sent(self, chain, transport) -> None:
        client = _client(chain, transport, period=5)
        for n in range(20):
            client.anchor_periodic_block(chain.get_block_by_number(n))
        sent = [json.loads(c[0][0].body)["Payload"]["id"] for c in transport.send.call_args_list]
        assert sent == ["0", "5", "10", "15"]

    def test_rejection_is_swallowed(self, chain, transport, caplog) -> None:
        transport.send.return_value = _response({"code": 42})
        with caplog.at_level(logging.WARNING, logger="blockanchor.anchor.client"):
            result = _client(chain, transport).anchor_periodic_block(chain.get_block_by_number(3))
        assert result.status == AnchorStatus.FAILED
        assert isinstance(result.error, ServiceRejection)
        assert result.error.code == 42
        assert "Failed to anchor block 3" in caplog.text

    def test_transport_error_is_swallowed(self, chain, transport) -> None:
        transport.send.side_effect = requests.ConnectionError("down")
        result = _client(chain, transport).anchor_periodic_block(chain.get_block_by_number(3))
        assert result.status == AnchorStatus.FAILED
        assert isinstance(result.error, TransportFailure)

    def test_missing_window_is_swallowed(self, transport) -> None:
        chain = JsonBlockStore([_block(4, 1)])
        result = _client(chain, transport, period=4).anchor_periodic_block(chain.get_block_by_number(4))
        assert result.status == AnchorStatus.FAILED
        assert isinstance(result.error, AggregationUnavailable)
        transport.send.assert_not_called()

    def test_success_logged_at_info(self, chain, transport, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="blockanchor.anchor.client"):
            _client(chain, transport).anchor_periodic_block(chain.get_block_by_number(2))
        assert "Anchored block 2" in caplog.text

    def test_watermark_not_consulted(self, chain, transport) -> None:
        """A recorded watermark neither blocks re-anchoring nor advances."""
        db = AnchorStateStore()
        db.write_anchored_block_number(10)
        client = AnchorClient(_config(period=5), db, chain, client=transport)
        client.anchor_periodic_block(chain.get_block_by_number(5))
        client.anchor_periodic_block(chain.get_block_by_number(15))
        assert transport.send.call_count == 2
        assert db.read_anchored_block_number() == 10


# ---------------------------------------------------------------------------
# Response decoding
# ---------------------------------------------------------------------------

class TestResponseDecoding:
    def test_decode_ok(self) -> None:
        resp = decode_response(b'{"code": 0, "result": [1, 2]}')
        assert resp.ok and resp.decoded
        assert resp.result == [1, 2]

    def test_decode_error_code(self) -> None:
        resp = decode_response(b'{"code": 1072, "result": null}')
        assert resp.code == 1072
        assert not resp.ok

    def test_missing_code_is_zero(self) -> None:
        resp = decode_response(b'{"result": "x"}')
        assert resp.code == 0
        assert resp.decoded

    def test_code_key_matched_case_insensitively(self) -> None:
        resp = decode_response(b'{"Code": 42, "Result": "x"}')
        assert resp.code == 42
        assert resp.result == "x"
        assert not resp.ok

    def test_exact_code_key_preferred(self) -> None:
        resp = decode_response(b'{"CODE": 7, "code": 0}')
        assert resp.code == 0

    def test_only_first_json_value_read(self) -> None:
        resp = decode_response(b'  {"code": 42}{"extra": 1}')
        assert resp.code == 42
        assert resp.decoded

    def test_mixed_case_rejection_fails_anchor(self, chain, transport) -> None:
        transport.send.return_value = _response(b'{"Code": 42}')
        with pytest.raises(ServiceRejection) as exc_info:
            _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        assert exc_info.value.code == 42

    @pytest.mark.parametrize("body", [b"", b"not json", b"[1, 2]", b'{"code": "7"}', b'{"code": 1.5}', b'{"code": true}'])
    def test_undecodable_yields_zero_value(self, body: bytes) -> None:
        resp = decode_response(body)
        assert resp.code == 0
        assert resp.result is None
        assert resp.decoded is False

    def test_undecodable_body_reported_as_success(self, chain, transport) -> None:
        """Known gap: a garbled reply decodes to code 0, the success sentinel."""
        transport.send.return_value = _response(b"<html>502 Bad Gateway</html>", status=502)
        result = _client(chain, transport).anchor_block(chain.get_block_by_number(5))
        assert result.success
        assert result.response.decoded is False

    def test_strict_decode_rejects_garbled_reply(self, chain, transport) -> None:
        transport.send.return_value = _response(b"<html>502 Bad Gateway</html>", status=502)
        with pytest.raises(TransportFailure, match="undecodable"):
            _client(chain, transport, strict_decode=True).anchor_block(chain.get_block_by_number(5))

    def test_strict_decode_accepts_valid_reply(self, chain, transport) -> None:
        result = _client(chain, transport, strict_decode=True).anchor_block(chain.get_block_by_number(5))
        assert result.success

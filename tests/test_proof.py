"""
Tests for the X-PAYMENT proof envelope.
"""
import base64
import json

import pytest

from x402_session.core.proof import (
    build_proof_envelope,
    decode_payment_proof,
    encode_payment_proof,
)


def test_envelope_is_bit_exact():
    header = encode_payment_proof("order-1", "exact", "devnet", 200000, "5sig")

    assert base64.b64decode(header).decode("utf-8") == (
        '{"x402Version":1,"scheme":"exact","network":"devnet","orderId":"order-1",'
        '"payload":{"amount":"200000","txHash":"5sig"}}'
    )


def test_encoding_is_deterministic():
    first = encode_payment_proof("order-1", "exact", "devnet", 1, "tx")
    second = encode_payment_proof("order-1", "exact", "devnet", 1, "tx")

    assert first == second
    assert first != encode_payment_proof("order-1", "exact", "devnet", 2, "tx")


def test_amount_is_rendered_as_decimal_string():
    envelope = build_proof_envelope("o", "exact", "solana", 10**20, "tx")

    assert envelope["payload"]["amount"] == "100000000000000000000"


def test_non_ascii_order_ids_use_utf8():
    header = encode_payment_proof("订单-1", "exact", "devnet", 5, "tx")

    assert json.loads(base64.b64decode(header).decode("utf-8"))["orderId"] == "订单-1"
    assert decode_payment_proof(header)["orderId"] == "订单-1"


def test_decode_is_symmetric():
    header = encode_payment_proof("order-9", "exact", "solana-devnet", 123456, "abc")

    assert decode_payment_proof(header) == {
        "x402Version": 1,
        "scheme": "exact",
        "network": "solana-devnet",
        "orderId": "order-9",
        "payload": {"amount": "123456", "txHash": "abc"},
    }


@pytest.mark.parametrize(
    "header",
    ["not base64!", base64.b64encode(b"[1, 2]").decode(), base64.b64encode(b"{}").decode()],
)
def test_decode_rejects_garbage(header):
    with pytest.raises(ValueError):
        decode_payment_proof(header)

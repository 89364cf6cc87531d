"""
Helpers for constructing the ``X-PAYMENT`` proof header sent to the gateway.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Dict

__all__ = [
    "X402_VERSION",
    "build_proof_envelope",
    "decode_payment_proof",
    "encode_payment_proof",
]

X402_VERSION = 1


def build_proof_envelope(
    order_id: str,
    scheme: str,
    network: str,
    amount_minor_units: int,
    transaction_id: str,
) -> Dict[str, Any]:
    """Build the proof envelope; key order is part of the wire format."""
    return {
        "x402Version": X402_VERSION,
        "scheme": scheme,
        "network": network,
        "orderId": order_id,
        "payload": {
            "amount": str(amount_minor_units),
            "txHash": transaction_id,
        },
    }


def encode_payment_proof(
    order_id: str,
    scheme: str,
    network: str,
    amount_minor_units: int,
    transaction_id: str,
) -> str:
    """
    Serialize the proof envelope as base64 of its compact UTF-8 JSON form.

    Identical inputs always yield the identical header value.
    """
    envelope = build_proof_envelope(
        order_id, scheme, network, amount_minor_units, transaction_id
    )
    serialized = json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(serialized.encode("utf-8")).decode("ascii")


def decode_payment_proof(header: str) -> Dict[str, Any]:
    """
    Inverse of :func:`encode_payment_proof`, as performed by the gateway.
    """
    try:
        raw = base64.b64decode(header.encode("ascii"), validate=True)
        envelope = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError) as exc:
        raise ValueError("X-PAYMENT header is not base64-encoded JSON") from exc
    if not isinstance(envelope, dict) or not isinstance(envelope.get("payload"), dict):
        raise ValueError("X-PAYMENT header does not contain a proof envelope")
    return envelope

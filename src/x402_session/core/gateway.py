"""
HTTP client for the payment gateway that issues and accepts x402 challenges.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

from .config import SessionConfig
from .errors import GatewayError
from .options import PaymentOption

__all__ = [
    "ConfirmationResult",
    "GatewayClient",
    "PAYMENT_HEADER",
    "PaymentRequestResult",
]

PAYMENT_HEADER = "X-PAYMENT"


def _get_json(
    session: requests.Session,
    url: str,
    *,
    params: Dict[str, str],
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30,
) -> Tuple[int, Dict[str, Any]]:
    try:
        response = session.get(url, params=params, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise GatewayError(f"Gateway request to {url} failed: {exc}") from exc
    try:
        body = response.json()
    except ValueError as exc:
        raise GatewayError(
            f"Failed to parse JSON from gateway at {url} "
            f"({response.status_code}): {response.text}",
            code=response.status_code,
        ) from exc
    if not isinstance(body, dict):
        raise GatewayError(
            f"Gateway at {url} returned a non-object body: {body!r}",
            code=response.status_code,
        )
    return response.status_code, body


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class PaymentRequestResult:
    """
    Outcome of asking the gateway for a resource: ``200`` when it is already
    paid, ``402`` with a payment challenge otherwise.
    """

    status: int
    data: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    @property
    def payment_required(self) -> bool:
        return self.status == 402

    @property
    def already_paid(self) -> bool:
        return self.status == 200

    @property
    def order_id(self) -> Optional[str]:
        order_id = self.data.get("orderId")
        return str(order_id) if order_id else None

    @property
    def options(self) -> List[PaymentOption]:
        return [
            PaymentOption.from_dict(accept)
            for accept in self.data.get("accepts") or []
            if isinstance(accept, dict)
        ]

    @classmethod
    def from_response(cls, http_status: int, body: Dict[str, Any]) -> "PaymentRequestResult":
        code = _as_int(body.get("code"))
        if code is not None:
            data = body.get("data")
            return cls(
                status=code,
                data=data if isinstance(data, dict) else {},
                message=str(body.get("message") or ""),
            )
        # Bare challenge bodies come straight from an HTTP 402.
        return cls(status=http_status, data=body, message=str(body.get("message") or ""))


@dataclass(frozen=True)
class ConfirmationResult:
    code: Optional[int]
    message: str
    raw: Dict[str, Any]

    @property
    def pending(self) -> bool:
        return "waiting" in self.message.lower()

    @property
    def success(self) -> bool:
        if self.pending:
            return False
        return self.code == 200 or (not self.code and not self.message)

    @classmethod
    def from_response(cls, http_status: int, body: Dict[str, Any]) -> "ConfirmationResult":
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        code = _as_int(body.get("code") or body.get("status") or data.get("code"))
        if code is None and http_status >= 400:
            code = http_status
        message = str(body.get("message") or data.get("message") or "")
        return cls(code=code, message=message, raw=body)


class GatewayClient:
    """
    Thin wrapper around the gateway's payment and confirmation endpoints.
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()

    @property
    def payment_url(self) -> str:
        return f"{self.config.gateway_url}{self.config.payment_path}"

    @property
    def confirm_url(self) -> str:
        return f"{self.config.gateway_url}{self.config.confirm_path}"

    def request_payment(self, resource_id: str) -> PaymentRequestResult:
        logging.info("Requesting payment options for %s from %s", resource_id, self.payment_url)
        status, body = _get_json(
            self.session,
            self.payment_url,
            params={"resourceid": resource_id},
            timeout=self.config.request_timeout,
        )
        result = PaymentRequestResult.from_response(status, body)
        if not (result.payment_required or result.already_paid):
            raise GatewayError(
                f"Gateway responded with {result.status}: {result.message or body}",
                code=result.status,
            )
        return result

    def confirm_payment(self, resource_id: str, proof_header: str) -> ConfirmationResult:
        logging.info("Submitting payment proof for %s to %s", resource_id, self.confirm_url)
        status, body = _get_json(
            self.session,
            self.confirm_url,
            params={"resourceid": resource_id},
            headers={PAYMENT_HEADER: proof_header},
            timeout=self.config.request_timeout,
        )
        return ConfirmationResult.from_response(status, body)

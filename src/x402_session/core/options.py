"""
Payment options offered by the gateway in a 402 challenge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

__all__ = ["PaymentOption"]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class PaymentOption:
    scheme: str
    network: str
    asset: str
    symbol: str
    pay_to: str
    decimals: Optional[int] = None
    resource: str = ""
    description: str = ""
    nonce: str = ""
    expires: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PaymentOption":
        return cls(
            scheme=str(payload.get("scheme") or ""),
            network=str(payload.get("network") or ""),
            asset=str(payload.get("asset") or ""),
            symbol=str(payload.get("symbol") or ""),
            pay_to=str(payload.get("payTo") or ""),
            decimals=_optional_int(payload.get("decimals")),
            resource=str(payload.get("resource") or ""),
            description=str(payload.get("description") or ""),
            nonce=str(payload.get("nonce") or ""),
            expires=_optional_int(payload.get("expires")),
        )

    @property
    def label(self) -> str:
        return f"{self.network or 'Network'} · {self.symbol or self.asset}"

    @property
    def token_symbol(self) -> str:
        return (self.symbol or self.asset or "USDC").upper()

    def resolve_decimals(self, default: int) -> int:
        """
        Token precision for this option; missing or non-positive values fall
        back to ``default``.
        """
        if self.decimals is None or self.decimals <= 0:
            return default
        return self.decimals

    def supported_by(self, network_markers: Iterable[str]) -> bool:
        network = self.network.lower()
        return any(marker in network for marker in network_markers)

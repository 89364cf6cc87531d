"""
Public facade for the x402 payment session package.

The module re-exports the most useful pieces for integrators so they can
``from x402_session import ...`` without navigating the package.
"""

from .api import create_orchestrator, pay_for_resource
from .core import (
    Cancel,
    ConfigError,
    ConfirmationTimeout,
    GatewayClient,
    InsufficientBalance,
    InsufficientFee,
    KeypairSigner,
    Ledger,
    PaymentError,
    PaymentOption,
    PaymentSessionOrchestrator,
    SelectAmount,
    SelectOption,
    Session,
    SessionConfig,
    SessionEvent,
    SessionParameters,
    SessionState,
    Signer,
    SolanaLedger,
    Start,
    TransferReceipt,
    decode_payment_proof,
    encode_payment_proof,
    fetch_wallet_snapshot,
    from_minor_units,
    load_session_config,
    to_minor_units,
)

__all__ = (
    "Cancel",
    "ConfigError",
    "ConfirmationTimeout",
    "GatewayClient",
    "InsufficientBalance",
    "InsufficientFee",
    "KeypairSigner",
    "Ledger",
    "PaymentError",
    "PaymentOption",
    "PaymentSessionOrchestrator",
    "SelectAmount",
    "SelectOption",
    "Session",
    "SessionConfig",
    "SessionEvent",
    "SessionParameters",
    "SessionState",
    "Signer",
    "SolanaLedger",
    "Start",
    "TransferReceipt",
    "create_orchestrator",
    "decode_payment_proof",
    "encode_payment_proof",
    "fetch_wallet_snapshot",
    "from_minor_units",
    "load_session_config",
    "pay_for_resource",
    "to_minor_units",
)

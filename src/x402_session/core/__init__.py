"""
Core primitives that implement the x402 payment session lifecycle.
"""

from .amounts import from_minor_units, to_minor_units
from .config import (
    ConfigError,
    SessionConfig,
    SessionParameters,
    load_session_config,
)
from .environment import (
    PAYER_KEY_ENV,
    SessionEnvironment,
    build_environment,
    load_env_file,
)
from .errors import (
    ConfirmationTimeout,
    ExecutionError,
    GatewayError,
    GatewayRejected,
    InsufficientBalance,
    InsufficientFee,
    InvalidSelection,
    LedgerError,
    MalformedAmount,
    MintMismatch,
    NoSupportedOption,
    OwnerProgramMismatch,
    PaymentError,
    ResolutionError,
    SenderAccountMissing,
    SessionError,
    SubmissionFailed,
)
from .executor import TransferExecutor, TransferReceipt
from .gateway import ConfirmationResult, GatewayClient, PaymentRequestResult
from .ledger import BlockReference, Ledger, SolanaLedger
from .options import PaymentOption
from .proof import build_proof_envelope, decode_payment_proof, encode_payment_proof
from .resolver import ResolvedDestination, TokenAccountResolver
from .session import (
    Cancel,
    Choice,
    PaymentSessionOrchestrator,
    SelectAmount,
    SelectOption,
    Session,
    SessionEvent,
    SessionState,
    Start,
)
from .signer import KeypairSigner, Signer
from .wallet import WalletSnapshot, fetch_wallet_snapshot

__all__ = [
    "BlockReference",
    "Cancel",
    "Choice",
    "ConfigError",
    "ConfirmationResult",
    "ConfirmationTimeout",
    "ExecutionError",
    "GatewayClient",
    "GatewayError",
    "GatewayRejected",
    "InsufficientBalance",
    "InsufficientFee",
    "InvalidSelection",
    "KeypairSigner",
    "Ledger",
    "LedgerError",
    "MalformedAmount",
    "MintMismatch",
    "NoSupportedOption",
    "OwnerProgramMismatch",
    "PAYER_KEY_ENV",
    "PaymentError",
    "PaymentOption",
    "PaymentRequestResult",
    "PaymentSessionOrchestrator",
    "ResolutionError",
    "ResolvedDestination",
    "SelectAmount",
    "SelectOption",
    "SenderAccountMissing",
    "Session",
    "SessionConfig",
    "SessionEnvironment",
    "SessionError",
    "SessionEvent",
    "SessionParameters",
    "SessionState",
    "Signer",
    "SolanaLedger",
    "Start",
    "SubmissionFailed",
    "TokenAccountResolver",
    "TransferExecutor",
    "TransferReceipt",
    "WalletSnapshot",
    "build_environment",
    "build_proof_envelope",
    "decode_payment_proof",
    "encode_payment_proof",
    "fetch_wallet_snapshot",
    "from_minor_units",
    "load_env_file",
    "load_session_config",
    "to_minor_units",
]

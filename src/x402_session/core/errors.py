"""
Exception hierarchy shared by the payment session primitives.

Every failure carries a stable ``kind`` string so the session state machine can
report it to callers without depending on concrete exception classes.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ConfigError",
    "ConfirmationTimeout",
    "ExecutionError",
    "GatewayError",
    "GatewayRejected",
    "InsufficientBalance",
    "InsufficientFee",
    "InvalidSelection",
    "LedgerError",
    "ConfirmationExpired",
    "MalformedAmount",
    "MintMismatch",
    "NoSupportedOption",
    "OwnerProgramMismatch",
    "PaymentError",
    "ResolutionError",
    "SenderAccountMissing",
    "SessionError",
    "SubmissionFailed",
]


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


class PaymentError(Exception):
    """Base class for every failure scoped to a payment session."""

    kind = "PaymentError"

    @property
    def detail(self) -> str:
        return str(self) or self.kind


class LedgerError(PaymentError):
    """Raised when the ledger RPC cannot be reached or answers with an error."""

    kind = "LedgerUnavailable"


class ConfirmationExpired(LedgerError):
    """The ledger moved past the transaction's last valid block height."""

    kind = "ConfirmationExpired"


class ResolutionError(PaymentError):
    kind = "ResolutionError"


class SenderAccountMissing(ResolutionError):
    kind = "SenderAccountMissing"


class MintMismatch(ResolutionError):
    kind = "MintMismatch"

    def __init__(self, account: str, expected_mint: str, actual_mint: str) -> None:
        self.account = account
        self.expected_mint = expected_mint
        self.actual_mint = actual_mint
        super().__init__(
            f"Token account {account} holds mint {actual_mint}, expected {expected_mint}"
        )


class OwnerProgramMismatch(ResolutionError):
    kind = "OwnerProgramMismatch"

    def __init__(self, account: str, owner_program: str) -> None:
        self.account = account
        self.owner_program = owner_program
        super().__init__(
            f"Associated account {account} is owned by {owner_program}, "
            "not the SPL Token program"
        )


class ExecutionError(PaymentError):
    kind = "ExecutionError"


class InsufficientBalance(ExecutionError):
    """The sender's token account holds less than the requested amount."""

    kind = "InsufficientBalance"

    def __init__(self, actual: int, required: int, decimals: int) -> None:
        self.actual = actual
        self.required = required
        self.decimals = decimals
        super().__init__(
            f"Token balance too low: have {actual} minor units, need {required} "
            f"({decimals} decimals)"
        )


class InsufficientFee(ExecutionError):
    """The sender cannot cover the native fee reserve."""

    kind = "InsufficientFee"

    def __init__(self, actual: int, required: int) -> None:
        self.actual = actual
        self.required = required
        super().__init__(
            f"SOL balance too low for fees: have {actual} lamports, need {required}"
        )


class SubmissionFailed(ExecutionError):
    kind = "SubmissionFailed"

    def __init__(self, message: str, transaction_id: Optional[str] = None) -> None:
        self.transaction_id = transaction_id
        super().__init__(message)


class ConfirmationTimeout(ExecutionError):
    """
    The confirmation wait ran past the blockhash validity window.

    This does not mean the transfer failed: the transaction may still land, so
    callers must query its status before paying the same order again.
    """

    kind = "ConfirmationTimeout"

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} was not confirmed before its blockhash "
            "expired; it may still land, check its status before retrying"
        )


class SessionError(PaymentError):
    kind = "SessionError"


class NoSupportedOption(SessionError):
    kind = "NoSupportedOption"


class InvalidSelection(SessionError):
    kind = "InvalidSelection"


class GatewayRejected(SessionError):
    kind = "GatewayRejected"

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        self.code = code
        super().__init__(message)


class GatewayError(GatewayRejected):
    """Raised when the gateway cannot be reached or returns an unusable body."""


class MalformedAmount(SessionError):
    kind = "MalformedAmount"

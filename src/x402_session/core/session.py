"""
State machine that drives one x402 resource purchase end to end.

Callers talk to :class:`PaymentSessionOrchestrator` through commands
(:class:`Start`, :class:`SelectOption`, :class:`SelectAmount`, :class:`Cancel`)
and receive a :class:`SessionEvent` describing the resulting state. The
orchestrator owns exactly one :class:`Session` at a time; every transition
replaces that record in a single assignment.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Union

from solders.pubkey import Pubkey

from .amounts import to_minor_units
from .config import SessionConfig
from .errors import (
    ConfirmationTimeout,
    GatewayError,
    GatewayRejected,
    InvalidSelection,
    MalformedAmount,
    NoSupportedOption,
    PaymentError,
    SubmissionFailed,
)
from .executor import TransferExecutor, TransferReceipt
from .gateway import GatewayClient
from .ledger import Ledger, SolanaLedger
from .options import PaymentOption
from .proof import encode_payment_proof
from .resolver import TokenAccountResolver
from .signer import Signer

__all__ = [
    "Cancel",
    "Choice",
    "Command",
    "PaymentSessionOrchestrator",
    "SelectAmount",
    "SelectOption",
    "Session",
    "SessionEvent",
    "SessionState",
    "Start",
    "generate_resource_id",
]


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_OPTIONS = "awaiting_options"
    AWAITING_NETWORK_SELECTION = "awaiting_network_selection"
    AWAITING_AMOUNT_SELECTION = "awaiting_amount_selection"
    TRANSFERRING = "transferring"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED)


# States in which no ledger side effect can be pending.
_RESTARTABLE = (
    SessionState.IDLE,
    SessionState.AWAITING_OPTIONS,
    SessionState.SUCCEEDED,
    SessionState.FAILED,
)
_CANCELLABLE = _RESTARTABLE + (
    SessionState.AWAITING_NETWORK_SELECTION,
    SessionState.AWAITING_AMOUNT_SELECTION,
)


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class SelectOption:
    index: int


@dataclass(frozen=True)
class SelectAmount:
    value: str


@dataclass(frozen=True)
class Cancel:
    pass


Command = Union[Start, SelectOption, SelectAmount, Cancel]


@dataclass(frozen=True)
class Choice:
    label: str
    value: str


@dataclass(frozen=True)
class Session:
    resource_id: str = ""
    order_id: Optional[str] = None
    candidate_options: Tuple[PaymentOption, ...] = ()
    selected_option: Optional[PaymentOption] = None
    decimals: Optional[int] = None
    requested_amount: Optional[str] = None
    transfer_receipt: Optional[TransferReceipt] = None
    submitted_transaction_id: Optional[str] = None
    state: SessionState = SessionState.IDLE
    error_kind: Optional[str] = None
    error_detail: Optional[str] = None
    settlement_pending: bool = False


@dataclass(frozen=True)
class SessionEvent:
    """
    Result of a command: the state reached and what to tell the user.

    ``accepted`` is ``False`` when the command did not apply to the current
    state and was ignored; the session is unchanged in that case.
    """

    state: SessionState
    message: str
    session: Session
    accepted: bool = True
    choices: Tuple[Choice, ...] = ()
    error_kind: Optional[str] = None
    error_detail: Optional[str] = None


def generate_resource_id(length: int = 8) -> str:
    return "".join(secrets.choice(string.ascii_letters) for _ in range(length))


class PaymentSessionOrchestrator:
    """
    Negotiate, pay and prove one resource purchase at a time.
    """

    def __init__(
        self,
        config: SessionConfig,
        signer: Signer,
        *,
        ledger: Optional[Ledger] = None,
        gateway: Optional[GatewayClient] = None,
        resolver: Optional[TokenAccountResolver] = None,
        executor: Optional[TransferExecutor] = None,
        resource_id_factory: Callable[[], str] = generate_resource_id,
        observer: Optional[Callable[[SessionEvent], Any]] = None,
    ) -> None:
        self.config = config
        self.signer = signer
        self.ledger = ledger or SolanaLedger(config.rpc_url)
        self.gateway = gateway or GatewayClient(config)
        self.resolver = resolver or TokenAccountResolver(self.ledger)
        self.executor = executor or TransferExecutor(
            self.ledger, min_fee_lamports=config.min_fee_lamports
        )
        self.resource_id_factory = resource_id_factory
        self.observer = observer
        self._session = Session()
        self._busy = False
        self._transfer_task: Optional[asyncio.Task] = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def transfer_in_flight(self) -> bool:
        return self._transfer_task is not None and not self._transfer_task.done()

    async def wait_for_transfer(self) -> Session:
        """
        Wait for a transfer whose ``SelectAmount`` caller stopped waiting.

        The transfer keeps running when the awaiting command is cancelled and
        records its receipt (or failure) on the session once it completes.
        """
        task = self._transfer_task
        if task is not None and not task.done():
            await asyncio.shield(task)
        return self._session

    def _abandoned(self) -> bool:
        # mid-payment state left behind by a cancelled command
        return (
            self._session.state
            in (SessionState.TRANSFERRING, SessionState.AWAITING_CONFIRMATION)
            and not self.transfer_in_flight
        )

    async def submit(self, command: Command) -> SessionEvent:
        if self._busy:
            return self._ignored("Another command is still being processed")
        self._busy = True
        try:
            if isinstance(command, Start):
                return await self._start()
            if isinstance(command, SelectOption):
                return self._select_option(command.index)
            if isinstance(command, SelectAmount):
                return await self._select_amount(command.value)
            if isinstance(command, Cancel):
                return self._cancel()
            raise TypeError(f"Unsupported command: {command!r}")
        finally:
            self._busy = False

    def _transition(self, **changes: Any) -> Session:
        self._session = replace(self._session, **changes)
        return self._session

    def _emit(
        self,
        message: str,
        *,
        choices: Tuple[Choice, ...] = (),
        accepted: bool = True,
        error_kind: Optional[str] = None,
        error_detail: Optional[str] = None,
    ) -> SessionEvent:
        session = self._session
        event = SessionEvent(
            state=session.state,
            message=message,
            session=session,
            accepted=accepted,
            choices=choices,
            error_kind=error_kind or session.error_kind,
            error_detail=error_detail or session.error_detail,
        )
        if self.observer is not None:
            self.observer(event)
        return event

    def _ignored(self, message: str, error: Optional[PaymentError] = None) -> SessionEvent:
        logging.info("Ignoring command in state %s: %s", self._session.state.value, message)
        return self._emit(
            message,
            accepted=False,
            error_kind=error.kind if error else None,
            error_detail=error.detail if error else None,
        )

    def _fail(self, error: PaymentError) -> SessionEvent:
        logging.error("Payment session %s failed (%s): %s",
                      self._session.resource_id, error.kind, error.detail)
        self._transition(
            state=SessionState.FAILED,
            error_kind=error.kind,
            error_detail=error.detail,
        )
        return self._emit(f"Payment failed: {error.detail}")

    async def _start(self) -> SessionEvent:
        if self._session.state not in _RESTARTABLE and not self._abandoned():
            return self._ignored("A payment session is already in progress")

        resource_id = self.resource_id_factory()
        self._session = Session(resource_id=resource_id, state=SessionState.AWAITING_OPTIONS)
        logging.info("Starting payment session for resource %s", resource_id)
        self._emit("Fetching payment information...")

        try:
            result = await asyncio.to_thread(self.gateway.request_payment, resource_id)
        except PaymentError as exc:
            return self._fail(exc)
        except Exception as exc:  # noqa: BLE001
            logging.exception("Payment request for %s raised unexpectedly", resource_id)
            return self._fail(GatewayError(f"Payment request failed: {exc}"))

        if result.already_paid:
            # the gateway may omit orderId here; the resource id identifies the purchase
            self._transition(
                state=SessionState.SUCCEEDED, order_id=result.order_id or resource_id
            )
            return self._emit("Payment already completed.")

        if not result.order_id:
            return self._fail(GatewayRejected("Payment challenge did not include an orderId"))

        options = tuple(
            option
            for option in result.options
            if option.supported_by(self.config.network_markers)
        )
        if not options:
            self._transition(order_id=result.order_id)
            return self._fail(
                NoSupportedOption("The gateway offered no payment option on a supported network")
            )

        self._transition(
            state=SessionState.AWAITING_NETWORK_SELECTION,
            order_id=result.order_id,
            candidate_options=options,
        )
        choices = tuple(Choice(option.label, str(index)) for index, option in enumerate(options))
        return self._emit(
            "Payment information received. Choose a network and token:", choices=choices
        )

    def _select_option(self, index: Union[int, str]) -> SessionEvent:
        session = self._session
        if session.state is not SessionState.AWAITING_NETWORK_SELECTION:
            return self._ignored("Not waiting for a network selection")
        try:
            position = int(index)
        except (TypeError, ValueError):
            position = -1
        if not 0 <= position < len(session.candidate_options):
            return self._ignored(
                "Invalid selection",
                InvalidSelection(f"No payment option at index {index!r}"),
            )

        option = session.candidate_options[position]
        decimals = option.resolve_decimals(self.config.default_decimals)
        self._transition(
            state=SessionState.AWAITING_AMOUNT_SELECTION,
            selected_option=option,
            decimals=decimals,
        )
        symbol = option.token_symbol
        choices = tuple(
            Choice(f"{preset} {symbol}", preset) for preset in self.config.amount_presets
        )
        return self._emit("Choose the amount to pay:", choices=choices)

    def _mint_for(self, option: PaymentOption) -> Pubkey:
        try:
            return Pubkey.from_string(option.asset)
        except ValueError:
            logging.info(
                "Option asset %r is not an address, using configured mint %s",
                option.asset,
                self.config.mint,
            )
            return self.config.mint_pubkey

    def _record_submission(self, transaction_id: str) -> None:
        self._transition(submitted_transaction_id=transaction_id)

    async def _select_amount(self, value: str) -> SessionEvent:
        session = self._session
        option = session.selected_option
        if (
            session.state is not SessionState.AWAITING_AMOUNT_SELECTION
            or option is None
            or session.decimals is None
        ):
            return self._ignored("Not waiting for an amount selection")

        decimals = session.decimals
        self._transition(requested_amount=value, state=SessionState.TRANSFERRING)
        if to_minor_units(value, decimals) == 0:
            return self._fail(
                MalformedAmount(f"Amount {value!r} does not encode to a positive value")
            )
        try:
            recipient = Pubkey.from_string(option.pay_to)
        except ValueError:
            return self._fail(
                InvalidSelection(f"Payment option payTo {option.pay_to!r} is not an address")
            )
        mint = self._mint_for(option)
        self._emit("Sending transfer...")

        # Owned by the orchestrator and shielded: cancelling this command
        # stops the wait, not the transfer.
        self._transfer_task = asyncio.create_task(
            self._transfer(mint, recipient, value, decimals)
        )
        event = await asyncio.shield(self._transfer_task)
        receipt = self._session.transfer_receipt
        if self._session.state is not SessionState.AWAITING_CONFIRMATION or receipt is None:
            return event
        return await self._confirm(option, receipt)

    async def _transfer(
        self, mint: Pubkey, recipient: Pubkey, value: str, decimals: int
    ) -> SessionEvent:
        try:
            destination = await self.resolver.resolve(mint, recipient, self.signer.pubkey())
            receipt = await self.executor.execute(
                destination,
                self.signer,
                value,
                decimals,
                on_submitted=self._record_submission,
            )
        except PaymentError as exc:
            return self._fail(exc)
        except Exception as exc:  # noqa: BLE001
            logging.exception("Transfer for %s raised unexpectedly", self._session.resource_id)
            transaction_id = self._session.submitted_transaction_id
            if transaction_id is not None:
                return self._fail(ConfirmationTimeout(transaction_id))
            return self._fail(SubmissionFailed(f"Transfer failed: {exc}"))

        self._transition(state=SessionState.AWAITING_CONFIRMATION, transfer_receipt=receipt)
        return self._emit(
            f"Transfer sent! Transaction: {receipt.transaction_id}. Confirming payment..."
        )

    async def _confirm(self, option: PaymentOption, receipt: TransferReceipt) -> SessionEvent:
        session = self._session
        proof = encode_payment_proof(
            session.order_id or "",
            option.scheme or "exact",
            option.network or "solana",
            receipt.amount_minor_units,
            receipt.transaction_id,
        )

        attempts = 0
        while True:
            try:
                result = await asyncio.to_thread(
                    self.gateway.confirm_payment, session.resource_id, proof
                )
            except PaymentError as exc:
                return self._fail(exc)
            except Exception as exc:  # noqa: BLE001
                logging.exception("Payment confirmation for %s raised unexpectedly",
                                  session.resource_id)
                return self._fail(GatewayError(f"Payment confirmation failed: {exc}"))

            if result.success:
                self._transition(state=SessionState.SUCCEEDED, settlement_pending=False)
                return self._emit("Payment confirmed.")
            if not result.pending:
                return self._fail(
                    GatewayRejected(
                        result.message or f"Payment confirmation failed (code: {result.code})",
                        code=result.code,
                    )
                )
            if attempts >= self.config.confirm_poll_attempts:
                break
            attempts += 1
            logging.info(
                "Gateway still settling %s (%s), re-checking in %.1fs (%d/%d)",
                receipt.transaction_id,
                result.message,
                self.config.confirm_poll_interval,
                attempts,
                self.config.confirm_poll_attempts,
            )
            await asyncio.sleep(self.config.confirm_poll_interval)

        logging.warning(
            "Gateway has not settled %s yet; treating the broadcast transfer as paid",
            receipt.transaction_id,
        )
        self._transition(state=SessionState.SUCCEEDED, settlement_pending=True)
        return self._emit(
            "Payment submitted; the gateway is still verifying the transaction."
        )

    def _cancel(self) -> SessionEvent:
        if self._session.state not in _CANCELLABLE and not self._abandoned():
            return self._ignored("The transfer is already under way and cannot be cancelled")
        logging.info("Discarding payment session %s", self._session.resource_id)
        self._session = Session()
        return self._emit("Payment session discarded.")

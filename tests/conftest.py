"""
Pytest fixtures for the x402 session tests.

The ledger and gateway collaborators are replaced by in-memory fakes so the
resolver, executor and state machine can be exercised without a network.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from x402_session.core.config import SessionConfig
from x402_session.core.errors import LedgerError
from x402_session.core.gateway import ConfirmationResult, PaymentRequestResult
from x402_session.core.ledger import BlockReference, Ledger
from x402_session.core.signer import KeypairSigner

GATEWAY_URL = "https://gateway.example.com"
ORDER_ID = "order-42"
RESOURCE_ID = "abcdefgh"


@dataclass
class FakeAccount:
    owner: Pubkey
    mint: Optional[str] = None
    balance: int = 0


class FakeLedger(Ledger):
    """In-memory ledger recording every call in order."""

    def __init__(self) -> None:
        self.accounts: Dict[Pubkey, FakeAccount] = {}
        self.lamports: Dict[Pubkey, int] = {}
        self.calls: List[Tuple[str, object]] = []
        self.sent: List[bytes] = []
        self.block = BlockReference(blockhash=Hash.default(), last_valid_block_height=1_000)
        self.send_error: Optional[Exception] = None
        self.confirm_error: Optional[Exception] = None
        self.chain_error: Optional[str] = None
        # when set, confirmation blocks until the event fires
        self.confirm_gate: Optional[asyncio.Event] = None

    def add_token_account(self, address: Pubkey, mint: Optional[Pubkey], balance: int = 0) -> None:
        self.accounts[address] = FakeAccount(
            owner=TOKEN_PROGRAM_ID,
            mint=str(mint) if mint is not None else None,
            balance=balance,
        )

    def add_wallet(self, address: Pubkey, lamports: int = 0) -> None:
        self.accounts[address] = FakeAccount(owner=SYSTEM_PROGRAM_ID)
        self.lamports[address] = lamports

    def queried(self, address: Pubkey) -> bool:
        return any(isinstance(arg, Pubkey) and arg == address for _, arg in self.calls)

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    async def get_account_owner(self, address: Pubkey) -> Optional[Pubkey]:
        self.calls.append(("get_account_owner", address))
        account = self.accounts.get(address)
        return account.owner if account else None

    async def get_token_mint(self, address: Pubkey) -> Optional[str]:
        self.calls.append(("get_token_mint", address))
        account = self.accounts.get(address)
        return account.mint if account else None

    async def get_token_balance(self, address: Pubkey) -> int:
        self.calls.append(("get_token_balance", address))
        account = self.accounts.get(address)
        if account is None:
            raise LedgerError(f"could not find account {address}")
        return account.balance

    async def get_native_balance(self, address: Pubkey) -> int:
        self.calls.append(("get_native_balance", address))
        return self.lamports.get(address, 0)

    async def get_latest_block(self) -> BlockReference:
        self.calls.append(("get_latest_block", None))
        return self.block

    async def send_transaction(self, raw_transaction: bytes) -> str:
        self.calls.append(("send_transaction", None))
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(raw_transaction)
        return str(Transaction.from_bytes(raw_transaction).signatures[0])

    async def confirm_transaction(self, transaction_id: str, block: BlockReference) -> Optional[str]:
        self.calls.append(("confirm_transaction", transaction_id))
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        if self.confirm_error is not None:
            raise self.confirm_error
        return self.chain_error


GatewayReply = Union[ConfirmationResult, Exception]


class FakeGateway:
    """Scripted gateway; the last confirmation reply repeats once the script runs out."""

    def __init__(
        self,
        payment: Union[PaymentRequestResult, Exception],
        confirmations: Optional[List[GatewayReply]] = None,
    ) -> None:
        self.payment = payment
        self.confirmations = list(confirmations or [confirmed()])
        self.payment_requests: List[str] = []
        self.proofs: List[Tuple[str, str]] = []

    def request_payment(self, resource_id: str) -> PaymentRequestResult:
        self.payment_requests.append(resource_id)
        if isinstance(self.payment, Exception):
            raise self.payment
        return self.payment

    def confirm_payment(self, resource_id: str, proof_header: str) -> ConfirmationResult:
        self.proofs.append((resource_id, proof_header))
        reply = self.confirmations.pop(0) if len(self.confirmations) > 1 else self.confirmations[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def accept(pay_to: Pubkey, mint: Pubkey, **overrides: object) -> Dict[str, object]:
    option: Dict[str, object] = {
        "scheme": "exact",
        "network": "devnet",
        "asset": str(mint),
        "symbol": "USDC",
        "decimals": 6,
        "payTo": str(pay_to),
        "resource": "promotion",
        "description": "Promote a post",
        "nonce": "n-1",
        "expires": 1_900_000_000,
    }
    option.update(overrides)
    return option


def challenge(*accepts: Dict[str, object], order_id: Optional[str] = ORDER_ID) -> PaymentRequestResult:
    data: Dict[str, object] = {"x402Version": 1, "accepts": list(accepts)}
    if order_id is not None:
        data["orderId"] = order_id
    return PaymentRequestResult(status=402, data=data)


def confirmed() -> ConfirmationResult:
    return ConfirmationResult(code=200, message="", raw={"code": 200})


def waiting() -> ConfirmationResult:
    return ConfirmationResult(code=200, message="Waiting for Payment", raw={})


@pytest.fixture
def mint() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def signer() -> KeypairSigner:
    return KeypairSigner(Keypair())


@pytest.fixture
def sender_account(signer: KeypairSigner, mint: Pubkey) -> Pubkey:
    return get_associated_token_address(signer.pubkey(), mint)


@pytest.fixture
def ledger(signer: KeypairSigner, mint: Pubkey, sender_account: Pubkey) -> FakeLedger:
    """A ledger where the sender holds 1 token (6 decimals) and 1 SOL."""
    fake = FakeLedger()
    fake.add_wallet(signer.pubkey(), lamports=1_000_000_000)
    fake.add_token_account(sender_account, mint, balance=1_000_000)
    return fake


@pytest.fixture
def recipient() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig(gateway_url=GATEWAY_URL, confirm_poll_interval=0.0)

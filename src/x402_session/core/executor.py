"""
Build, sign, submit and confirm SPL token transfers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from solders.instruction import Instruction
from solders.message import Message
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferParams,
    create_associated_token_account,
    get_associated_token_address,
    transfer,
)

from .amounts import to_minor_units
from .errors import (
    ConfirmationTimeout,
    InsufficientBalance,
    InsufficientFee,
    LedgerError,
    SubmissionFailed,
)
from .ledger import Ledger
from .resolver import ResolvedDestination
from .signer import Signer

__all__ = ["DEFAULT_MIN_FEE_LAMPORTS", "TransferExecutor", "TransferReceipt"]

# 0.01 SOL
DEFAULT_MIN_FEE_LAMPORTS = 10_000_000


@dataclass(frozen=True)
class TransferReceipt:
    transaction_id: str
    amount_minor_units: int
    decimals_used: int
    source_account: str
    destination_account: str


class TransferExecutor:
    """
    Single-shot SPL token transfer. Never retries; retry policy belongs to
    the caller.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        min_fee_lamports: int = DEFAULT_MIN_FEE_LAMPORTS,
    ) -> None:
        self.ledger = ledger
        self.min_fee_lamports = min_fee_lamports

    def build_instructions(
        self,
        destination: ResolvedDestination,
        signer: Signer,
        amount_minor_units: int,
    ) -> List[Instruction]:
        payer = signer.pubkey()
        instructions: List[Instruction] = []
        if destination.requires_creation:
            instructions.append(
                create_associated_token_account(
                    payer, destination.owner_address, destination.mint
                )
            )
        instructions.append(
            transfer(
                TransferParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=get_associated_token_address(payer, destination.mint),
                    dest=destination.token_account_address,
                    owner=payer,
                    amount=amount_minor_units,
                )
            )
        )
        return instructions

    async def execute(
        self,
        destination: ResolvedDestination,
        signer: Signer,
        amount: str,
        decimals: int,
        *,
        on_submitted: Optional[Callable[[str], None]] = None,
    ) -> TransferReceipt:
        payer = signer.pubkey()
        source = get_associated_token_address(payer, destination.mint)
        amount_minor_units = to_minor_units(amount, decimals)

        token_balance = await self.ledger.get_token_balance(source)
        if token_balance < amount_minor_units:
            raise InsufficientBalance(token_balance, amount_minor_units, decimals)

        lamports = await self.ledger.get_native_balance(payer)
        if lamports < self.min_fee_lamports:
            raise InsufficientFee(lamports, self.min_fee_lamports)

        instructions = self.build_instructions(destination, signer, amount_minor_units)

        # fresh blockhash per attempt
        block = await self.ledger.get_latest_block()
        message = Message.new_with_blockhash(instructions, payer, block.blockhash)
        signature = await signer.sign_message(bytes(message))
        transaction = Transaction.populate(message, [signature])

        logging.info(
            "Submitting transfer of %s minor units from %s to %s (%d instructions)",
            amount_minor_units,
            source,
            destination.token_account_address,
            len(instructions),
        )
        try:
            transaction_id = await self.ledger.send_transaction(bytes(transaction))
        except LedgerError as exc:
            raise SubmissionFailed(f"Transaction submission failed: {exc}") from exc

        if on_submitted is not None:
            on_submitted(transaction_id)

        try:
            chain_error = await self.ledger.confirm_transaction(transaction_id, block)
        except LedgerError as exc:
            # ConfirmationExpired included: the outcome is unknown, not failed.
            logging.warning("Confirmation of %s did not complete: %s", transaction_id, exc)
            raise ConfirmationTimeout(transaction_id) from exc
        if chain_error is not None:
            raise SubmissionFailed(
                f"Transaction {transaction_id} failed on-chain: {chain_error}",
                transaction_id=transaction_id,
            )

        return TransferReceipt(
            transaction_id=transaction_id,
            amount_minor_units=amount_minor_units,
            decimals_used=decimals,
            source_account=str(source),
            destination_account=str(destination.token_account_address),
        )

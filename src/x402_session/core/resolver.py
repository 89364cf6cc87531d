"""
Destination token account resolution for SPL token transfers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from .errors import MintMismatch, OwnerProgramMismatch, SenderAccountMissing
from .ledger import Ledger

__all__ = ["ResolvedDestination", "TokenAccountResolver"]


@dataclass(frozen=True)
class ResolvedDestination:
    """
    Where a transfer should land. Recomputed for every transfer attempt.
    """

    token_account_address: Pubkey
    requires_creation: bool
    owner_address: Pubkey
    mint: Pubkey


class TokenAccountResolver:
    """
    Pick the token account that should receive ``mint`` for a recipient.

    A recipient address that already is a token account for the mint is paid
    directly; otherwise the recipient's associated token account is used and
    flagged for creation when it does not exist yet.
    """

    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    async def resolve(
        self, mint: Pubkey, recipient: Pubkey, sender: Pubkey
    ) -> ResolvedDestination:
        sender_account = get_associated_token_address(sender, mint)
        if await self.ledger.get_account_owner(sender_account) is None:
            raise SenderAccountMissing(
                f"Sender {sender} has no associated token account for mint {mint}; "
                "create and fund it before paying"
            )

        direct_owner = await self.ledger.get_account_owner(recipient)
        if direct_owner is not None and direct_owner == TOKEN_PROGRAM_ID:
            await self._check_mint(recipient, mint)
            logging.info("Paying token account %s directly", recipient)
            return ResolvedDestination(
                token_account_address=recipient,
                requires_creation=False,
                owner_address=recipient,
                mint=mint,
            )

        associated = get_associated_token_address(recipient, mint)
        associated_owner = await self.ledger.get_account_owner(associated)
        if associated_owner is None:
            logging.info(
                "Associated token account %s for %s does not exist yet", associated, recipient
            )
            return ResolvedDestination(
                token_account_address=associated,
                requires_creation=True,
                owner_address=recipient,
                mint=mint,
            )
        if associated_owner != TOKEN_PROGRAM_ID:
            raise OwnerProgramMismatch(str(associated), str(associated_owner))

        await self._check_mint(associated, mint)
        return ResolvedDestination(
            token_account_address=associated,
            requires_creation=False,
            owner_address=recipient,
            mint=mint,
        )

    async def _check_mint(self, account: Pubkey, mint: Pubkey) -> None:
        account_mint = await self.ledger.get_token_mint(account)
        if account_mint and account_mint != str(mint):
            raise MintMismatch(str(account), str(mint), account_mint)

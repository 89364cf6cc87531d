"""
One-shot wallet balance lookup for display purposes.

Nothing here feeds the payment path: the executor always queries balances
itself right before submitting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from .amounts import from_minor_units
from .errors import LedgerError
from .ledger import Ledger

__all__ = ["LAMPORTS_PER_SOL", "WalletSnapshot", "fetch_wallet_snapshot"]

LAMPORTS_PER_SOL = 1_000_000_000
_SOL_DECIMALS = 9


@dataclass(frozen=True)
class WalletSnapshot:
    address: str
    lamports: int
    token_account: str
    token_balance: int
    token_decimals: int

    @property
    def sol(self) -> str:
        return from_minor_units(self.lamports, _SOL_DECIMALS)

    @property
    def token(self) -> str:
        return from_minor_units(self.token_balance, self.token_decimals)


async def fetch_wallet_snapshot(
    ledger: Ledger, owner: Pubkey, mint: Pubkey, decimals: int
) -> WalletSnapshot:
    lamports = await ledger.get_native_balance(owner)
    token_account = get_associated_token_address(owner, mint)
    token_balance = 0
    if await ledger.get_account_owner(token_account) is not None:
        try:
            token_balance = await ledger.get_token_balance(token_account)
        except LedgerError as exc:
            logging.warning("Failed to fetch token balance of %s: %s", token_account, exc)
    return WalletSnapshot(
        address=str(owner),
        lamports=lamports,
        token_account=str(token_account),
        token_balance=token_balance,
        token_decimals=decimals,
    )

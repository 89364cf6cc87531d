"""
Ledger capability consumed by the resolver and the transfer executor.

:class:`Ledger` is the narrow interface the payment primitives depend on;
:class:`SolanaLedger` implements it on top of solana-py's ``AsyncClient``.
Every RPC failure is converted into :class:`~x402_session.core.errors.LedgerError`.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional, TypeVar

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from .errors import ConfirmationExpired, LedgerError

__all__ = ["BlockReference", "Ledger", "SolanaLedger"]

T = TypeVar("T")


@dataclass(frozen=True)
class BlockReference:
    """A recent blockhash and the last block height at which it is valid."""

    blockhash: Hash
    last_valid_block_height: int


class Ledger(abc.ABC):
    @abc.abstractmethod
    async def get_account_owner(self, address: Pubkey) -> Optional[Pubkey]:
        """Return the owner program of ``address`` or ``None`` if it does not exist."""

    @abc.abstractmethod
    async def get_token_mint(self, address: Pubkey) -> Optional[str]:
        """Return the parsed mint of a token account, ``None`` when unavailable."""

    @abc.abstractmethod
    async def get_token_balance(self, address: Pubkey) -> int:
        """Return the raw (minor-unit) balance of a token account."""

    @abc.abstractmethod
    async def get_native_balance(self, address: Pubkey) -> int:
        """Return the lamport balance of ``address``."""

    @abc.abstractmethod
    async def get_latest_block(self) -> BlockReference:
        ...

    @abc.abstractmethod
    async def send_transaction(self, raw_transaction: bytes) -> str:
        """Submit a signed, serialized transaction and return its signature."""

    @abc.abstractmethod
    async def confirm_transaction(
        self, transaction_id: str, block: BlockReference
    ) -> Optional[str]:
        """
        Wait until ``transaction_id`` reaches the configured commitment.

        Returns the on-chain error rendered as text if the transaction was
        included but failed, ``None`` on success. Raises
        :class:`ConfirmationExpired` once ``block.last_valid_block_height`` is
        exceeded.
        """


class SolanaLedger(Ledger):
    """
    :class:`Ledger` backed by a Solana JSON-RPC endpoint.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        *,
        client: Optional[AsyncClient] = None,
        commitment: Commitment = Confirmed,
        poll_seconds: float = 0.5,
    ) -> None:
        if client is None and rpc_url is None:
            raise ValueError("Either rpc_url or client must be provided")
        self.commitment = commitment
        self.poll_seconds = poll_seconds
        self.client = client or AsyncClient(rpc_url, commitment=commitment)

    async def __aenter__(self) -> "SolanaLedger":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    async def _call(self, description: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except (RPCException, SolanaRpcException) as exc:
            raise LedgerError(f"{description} failed: {exc}") from exc

    async def get_account_owner(self, address: Pubkey) -> Optional[Pubkey]:
        response = await self._call(
            f"getAccountInfo({address})", self.client.get_account_info(address)
        )
        if response.value is None:
            return None
        return response.value.owner

    async def get_token_mint(self, address: Pubkey) -> Optional[str]:
        response = await self._call(
            f"getAccountInfo/jsonParsed({address})",
            self.client.get_account_info_json_parsed(address),
        )
        if response.value is None:
            return None
        parsed = getattr(response.value.data, "parsed", None)
        if not isinstance(parsed, dict):
            return None
        mint = (parsed.get("info") or {}).get("mint")
        return str(mint) if mint else None

    async def get_token_balance(self, address: Pubkey) -> int:
        response = await self._call(
            f"getTokenAccountBalance({address})",
            self.client.get_token_account_balance(address),
        )
        return int(response.value.amount or "0")

    async def get_native_balance(self, address: Pubkey) -> int:
        response = await self._call(
            f"getBalance({address})", self.client.get_balance(address)
        )
        return int(response.value)

    async def get_latest_block(self) -> BlockReference:
        response = await self._call(
            "getLatestBlockhash", self.client.get_latest_blockhash(self.commitment)
        )
        return BlockReference(
            blockhash=response.value.blockhash,
            last_valid_block_height=response.value.last_valid_block_height,
        )

    async def send_transaction(self, raw_transaction: bytes) -> str:
        opts = TxOpts(skip_preflight=False, preflight_commitment=self.commitment)
        response = await self._call(
            "sendTransaction", self.client.send_raw_transaction(raw_transaction, opts)
        )
        signature = str(response.value)
        logging.info("Solana transaction sent: %s", signature)
        return signature

    async def confirm_transaction(
        self, transaction_id: str, block: BlockReference
    ) -> Optional[str]:
        try:
            response = await self.client.confirm_transaction(
                Signature.from_string(transaction_id),
                self.commitment,
                sleep_seconds=self.poll_seconds,
                last_valid_block_height=block.last_valid_block_height,
            )
        except TransactionExpiredBlockheightExceededError as exc:
            raise ConfirmationExpired(
                f"Block height exceeded {block.last_valid_block_height} "
                f"while waiting for {transaction_id}"
            ) from exc
        except (RPCException, SolanaRpcException, UnconfirmedTxError) as exc:
            raise LedgerError(f"confirmTransaction failed: {exc}") from exc

        statuses = response.value or []
        status = statuses[0] if statuses else None
        if status is not None and status.err is not None:
            return str(status.err)
        logging.info("Solana transaction confirmed: %s", transaction_id)
        return None

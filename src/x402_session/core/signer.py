"""
Signing capability used by the transfer executor.

Transfer logic only sees :class:`Signer`, so key custody can move to a hardware
or remote signer without touching it.
"""

from __future__ import annotations

import abc

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from .errors import ConfigError

__all__ = ["KeypairSigner", "Signer"]


class Signer(abc.ABC):
    @abc.abstractmethod
    def pubkey(self) -> Pubkey:
        ...

    @abc.abstractmethod
    async def sign_message(self, message: bytes) -> Signature:
        """Sign the serialized transaction message."""


class KeypairSigner(Signer):
    """
    :class:`Signer` holding an in-process ed25519 keypair.
    """

    def __init__(self, keypair: Keypair) -> None:
        self.keypair = keypair

    @classmethod
    def from_base58(cls, secret: str) -> "KeypairSigner":
        """Build a signer from a base58-encoded 64-byte secret key."""
        cleaned = secret.strip()
        if not cleaned:
            raise ConfigError("Solana private key must not be empty")
        try:
            raw = base58.b58decode(cleaned)
        except ValueError as exc:
            raise ConfigError("Solana private key is not valid base58") from exc
        if len(raw) != 64:
            raise ConfigError(
                f"Solana private key must decode to 64 bytes, got {len(raw)}"
            )
        try:
            return cls(Keypair.from_bytes(raw))
        except ValueError as exc:
            raise ConfigError("Solana private key is not a valid ed25519 keypair") from exc

    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    async def sign_message(self, message: bytes) -> Signature:
        return self.keypair.sign_message(message)

"""
Tests for the Solana RPC ledger adapter, with the async client mocked out.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from solana.rpc.core import RPCException, TransactionExpiredBlockheightExceededError
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.constants import TOKEN_PROGRAM_ID

from x402_session.core.errors import ConfirmationExpired, LedgerError
from x402_session.core.ledger import BlockReference, SolanaLedger


def _response(value):
    return SimpleNamespace(value=value)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def solana_ledger(client):
    return SolanaLedger(client=client)


def test_requires_endpoint_or_client():
    with pytest.raises(ValueError):
        SolanaLedger()


@pytest.mark.asyncio
async def test_account_owner(solana_ledger, client):
    client.get_account_info = AsyncMock(
        side_effect=[_response(SimpleNamespace(owner=TOKEN_PROGRAM_ID)), _response(None)]
    )

    assert await solana_ledger.get_account_owner(Pubkey.new_unique()) == TOKEN_PROGRAM_ID
    assert await solana_ledger.get_account_owner(Pubkey.new_unique()) is None


@pytest.mark.asyncio
async def test_token_mint_from_parsed_data(solana_ledger, client):
    parsed = SimpleNamespace(parsed={"type": "account", "info": {"mint": "MintAddress"}})
    client.get_account_info_json_parsed = AsyncMock(
        side_effect=[
            _response(SimpleNamespace(data=parsed)),
            _response(SimpleNamespace(data=b"raw bytes")),
            _response(None),
        ]
    )

    assert await solana_ledger.get_token_mint(Pubkey.new_unique()) == "MintAddress"
    assert await solana_ledger.get_token_mint(Pubkey.new_unique()) is None
    assert await solana_ledger.get_token_mint(Pubkey.new_unique()) is None


@pytest.mark.asyncio
async def test_balances(solana_ledger, client):
    client.get_token_account_balance = AsyncMock(
        return_value=_response(SimpleNamespace(amount="250000", ui_amount_string="0.25"))
    )
    client.get_balance = AsyncMock(return_value=_response(5_000))

    assert await solana_ledger.get_token_balance(Pubkey.new_unique()) == 250_000
    assert await solana_ledger.get_native_balance(Pubkey.new_unique()) == 5_000


@pytest.mark.asyncio
async def test_latest_block(solana_ledger, client):
    blockhash = Hash.default()
    client.get_latest_blockhash = AsyncMock(
        return_value=_response(SimpleNamespace(blockhash=blockhash, last_valid_block_height=99))
    )

    assert await solana_ledger.get_latest_block() == BlockReference(blockhash, 99)


@pytest.mark.asyncio
async def test_rpc_errors_become_ledger_errors(solana_ledger, client):
    client.send_raw_transaction = AsyncMock(side_effect=RPCException("Blockhash not found"))

    with pytest.raises(LedgerError, match="Blockhash not found"):
        await solana_ledger.send_transaction(b"tx")


@pytest.mark.asyncio
async def test_send_returns_signature_text(solana_ledger, client):
    signature = Signature.default()
    client.send_raw_transaction = AsyncMock(return_value=_response(signature))

    assert await solana_ledger.send_transaction(b"tx") == str(signature)


@pytest.mark.asyncio
async def test_confirmation_outcomes(solana_ledger, client):
    block = BlockReference(Hash.default(), 10)
    transaction_id = str(Signature.default())
    client.confirm_transaction = AsyncMock(
        side_effect=[
            _response([SimpleNamespace(err=None)]),
            _response([SimpleNamespace(err="InstructionError")]),
        ]
    )

    assert await solana_ledger.confirm_transaction(transaction_id, block) is None
    assert await solana_ledger.confirm_transaction(transaction_id, block) == "InstructionError"
    kwargs = client.confirm_transaction.call_args.kwargs
    assert kwargs["last_valid_block_height"] == 10


@pytest.mark.asyncio
async def test_expired_blockhash(solana_ledger, client):
    client.confirm_transaction = AsyncMock(
        side_effect=TransactionExpiredBlockheightExceededError("expired")
    )

    with pytest.raises(ConfirmationExpired):
        await solana_ledger.confirm_transaction(
            str(Signature.default()), BlockReference(Hash.default(), 10)
        )


@pytest.mark.asyncio
async def test_context_manager_closes_client(client):
    client.close = AsyncMock()

    async with SolanaLedger(client=client):
        pass

    client.close.assert_awaited_once()

"""
Tests for the display-only wallet snapshot.
"""
import pytest
from solders.keypair import Keypair

from x402_session.core.wallet import fetch_wallet_snapshot
from tests.conftest import FakeLedger


@pytest.mark.asyncio
async def test_snapshot_reports_sol_and_token(ledger, signer, mint, sender_account):
    snapshot = await fetch_wallet_snapshot(ledger, signer.pubkey(), mint, 6)

    assert snapshot.address == str(signer.pubkey())
    assert snapshot.sol == "1"
    assert snapshot.token == "1"
    assert snapshot.token_account == str(sender_account)


@pytest.mark.asyncio
async def test_missing_token_account_reads_as_zero(mint):
    owner = Keypair().pubkey()
    ledger = FakeLedger()
    ledger.add_wallet(owner, lamports=1_500_000_000)

    snapshot = await fetch_wallet_snapshot(ledger, owner, mint, 6)

    assert snapshot.sol == "1.5"
    assert snapshot.token_balance == 0
    assert "get_token_balance" not in ledger.call_names()

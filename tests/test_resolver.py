"""
Tests for destination token account resolution.
"""
import pytest
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from x402_session.core.errors import (
    MintMismatch,
    OwnerProgramMismatch,
    SenderAccountMissing,
)
from x402_session.core.resolver import TokenAccountResolver
from tests.conftest import FakeLedger


@pytest.mark.asyncio
async def test_missing_sender_account_fails_first(signer, mint, recipient):
    ledger = FakeLedger()
    resolver = TokenAccountResolver(ledger)

    with pytest.raises(SenderAccountMissing):
        await resolver.resolve(mint, recipient, signer.pubkey())
    assert not ledger.queried(recipient)


@pytest.mark.asyncio
async def test_recipient_token_account_is_paid_directly(ledger, signer, mint, recipient):
    ledger.add_token_account(recipient, mint)

    destination = await TokenAccountResolver(ledger).resolve(mint, recipient, signer.pubkey())

    assert destination.token_account_address == recipient
    assert destination.requires_creation is False
    assert destination.mint == mint
    assert not ledger.queried(get_associated_token_address(recipient, mint))


@pytest.mark.asyncio
async def test_direct_account_without_parsed_mint_is_accepted(ledger, signer, mint, recipient):
    ledger.add_token_account(recipient, None)

    destination = await TokenAccountResolver(ledger).resolve(mint, recipient, signer.pubkey())

    assert destination.token_account_address == recipient


@pytest.mark.asyncio
async def test_missing_associated_account_requires_creation(ledger, signer, mint, recipient):
    ledger.add_wallet(recipient)

    destination = await TokenAccountResolver(ledger).resolve(mint, recipient, signer.pubkey())

    assert destination.token_account_address == get_associated_token_address(recipient, mint)
    assert destination.requires_creation is True
    assert destination.owner_address == recipient


@pytest.mark.asyncio
async def test_unknown_recipient_requires_creation(ledger, signer, mint, recipient):
    destination = await TokenAccountResolver(ledger).resolve(mint, recipient, signer.pubkey())

    assert destination.requires_creation is True


@pytest.mark.asyncio
async def test_existing_associated_account_is_used(ledger, signer, mint, recipient):
    ledger.add_wallet(recipient)
    associated = get_associated_token_address(recipient, mint)
    ledger.add_token_account(associated, mint)

    destination = await TokenAccountResolver(ledger).resolve(mint, recipient, signer.pubkey())

    assert destination.token_account_address == associated
    assert destination.requires_creation is False


@pytest.mark.asyncio
async def test_associated_account_owned_by_other_program(ledger, signer, mint, recipient):
    associated = get_associated_token_address(recipient, mint)
    ledger.add_wallet(associated)

    with pytest.raises(OwnerProgramMismatch) as excinfo:
        await TokenAccountResolver(ledger).resolve(mint, recipient, signer.pubkey())
    assert excinfo.value.account == str(associated)


@pytest.mark.asyncio
@pytest.mark.parametrize("recipient_is_wallet", [True, False])
@pytest.mark.parametrize("direct", [True, False])
async def test_mint_mismatch_for_every_ownership_combination(
    ledger, signer, mint, recipient, recipient_is_wallet, direct
):
    other_mint = Pubkey.new_unique()
    if direct:
        ledger.add_token_account(recipient, other_mint)
    else:
        if recipient_is_wallet:
            ledger.add_wallet(recipient)
        ledger.add_token_account(get_associated_token_address(recipient, mint), other_mint)

    with pytest.raises(MintMismatch) as excinfo:
        await TokenAccountResolver(ledger).resolve(mint, recipient, signer.pubkey())
    assert excinfo.value.expected_mint == str(mint)
    assert excinfo.value.actual_mint == str(other_mint)

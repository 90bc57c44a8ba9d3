"""
Devnet asset ledgers: ERC-721 ownership/approvals, default operators, receiver
hooks, ERC-20 allowances and the treasury sink.
"""
from __future__ import annotations

import pytest

from nftmarket.access.gate import ControlCenter
from nftmarket.assets.directory import AssetDirectory
from nftmarket.assets.erc20 import PaymentToken
from nftmarket.assets.erc721 import ERC721_RECEIVED, Collection
from nftmarket.assets.treasury import Treasury
from nftmarket.chain.address import ZERO_ADDRESS, derive_address
from nftmarket.errors import AssetError, AuthorizationError, Reason

from .helpers import rejects

OWNER = derive_address("owner")
ALICE = derive_address("alice")
BOB = derive_address("bob")
MARKET = derive_address("market")


@pytest.fixture
def directory():
    return AssetDirectory()


@pytest.fixture
def nft(directory):
    return directory.register_collection(Collection(derive_address("nft"), "Things", "THG", OWNER))


def test_mint_is_sequential_and_owner_only(nft):
    assert nft.mint(OWNER, ALICE) == 0
    assert nft.mint(OWNER, ALICE) == 1
    assert nft.mint(OWNER, BOB, 10) == 10
    assert nft.mint(OWNER, BOB) == 11
    assert nft.tokens_of(ALICE) == [0, 1] and nft.balance_of(BOB) == 2
    with rejects(Reason.NOT_OWNER, AssetError):
        nft.mint(ALICE, ALICE)
    with rejects(Reason.INVALID_TOKEN_ID, AssetError):
        nft.mint(OWNER, ALICE, 10)


def test_transfer_requires_owner_or_approval(nft):
    tid = nft.mint(OWNER, ALICE)
    with rejects(Reason.NOT_APPROVED, AssetError):
        nft.transfer_from(BOB, ALICE, BOB, tid)
    with rejects(Reason.NOT_OWNER, AssetError):
        nft.transfer_from(ALICE, BOB, ALICE, tid)

    nft.approve(ALICE, BOB, tid)
    assert nft.get_approved(tid) == BOB
    nft.transfer_from(BOB, ALICE, BOB, tid)
    assert nft.owner_of(tid) == BOB
    assert nft.get_approved(tid) == ZERO_ADDRESS


def test_operator_and_default_operator(nft):
    tid = nft.mint(OWNER, ALICE)
    nft.set_approval_for_all(ALICE, BOB, True)
    assert nft.is_approved_for_all(ALICE, BOB)
    nft.transfer_from(BOB, ALICE, BOB, tid)

    with rejects(Reason.NOT_OWNER, AssetError):
        nft.set_default_operator(ALICE, MARKET, True)
    nft.set_default_operator(OWNER, MARKET, True)
    assert nft.is_default_operator(MARKET)
    nft.transfer_from(MARKET, BOB, ALICE, tid)
    assert nft.owner_of(tid) == ALICE


def test_unknown_token_id(nft):
    with rejects(Reason.INVALID_TOKEN_ID, AssetError):
        nft.owner_of(42)
    assert not nft.exists(42)


def test_safe_transfer_checks_contract_receivers(directory, nft):
    treasury = Treasury(derive_address("treasury"))
    directory.register_contract(treasury.address, treasury)
    directory.register_contract(MARKET, object())
    tid = nft.mint(OWNER, ALICE)

    nft.safe_transfer_from(ALICE, ALICE, BOB, tid)  # plain account: no hook
    with rejects(Reason.RECEIVER_REJECTED, AssetError):
        nft.safe_transfer_from(BOB, BOB, MARKET, tid)
    nft.safe_transfer_from(BOB, BOB, treasury.address, tid)
    assert nft.owner_of(tid) == treasury.address
    assert treasury.on_erc721_received(BOB, BOB, tid) == ERC721_RECEIVED


def test_burn(nft):
    tid = nft.mint(OWNER, ALICE)
    with rejects(Reason.NOT_APPROVED):
        nft.burn(BOB, tid)
    nft.burn(ALICE, tid)
    assert not nft.exists(tid)


def test_erc20_allowance_helpers():
    gate = ControlCenter(OWNER)
    gate.add_to_allow_list(OWNER, ALICE)
    token = PaymentToken(derive_address("t"), "T", "T", gate=gate)
    token.mint(OWNER, ALICE, 10)
    token.increase_allowance(ALICE, BOB, 4)
    token.increase_allowance(ALICE, BOB, 4)
    assert token.allowance(ALICE, BOB) == 8
    token.decrease_allowance(ALICE, BOB, 3)
    with rejects(Reason.INSUFFICIENT_ALLOWANCE):
        token.decrease_allowance(ALICE, BOB, 6)
    token.transfer_from(BOB, ALICE, BOB, 5)
    assert token.allowance(ALICE, BOB) == 0
    assert (token.balance_of(ALICE), token.balance_of(BOB), token.total_supply()) == (5, 5, 10)
    with rejects(Reason.INSUFFICIENT_BALANCE):
        token.transfer(ALICE, BOB, 6)
    with rejects(Reason.INVALID_ADDRESS):
        token.transfer(ALICE, "bob", 1)


def test_treasury_withdraw_is_treasurer_only():
    gate = ControlCenter(OWNER)
    gate.add_to_allow_list(OWNER, ALICE)
    treasury = Treasury(derive_address("treasury"), gate)
    token = PaymentToken(derive_address("t"), "T", "T", gate=gate)
    gate.add_to_allow_list(OWNER, treasury.address)
    token.mint(OWNER, treasury.address, 50)

    with rejects(Reason.TREASURER_ONLY, AuthorizationError):
        treasury.withdraw(ALICE, token, ALICE, 10)
    treasury.withdraw(OWNER, token, ALICE, 10)
    assert token.balance_of(ALICE) == 10 and token.balance_of(treasury.address) == 40


def test_directory_lookup(directory, nft):
    with rejects(Reason.UNKNOWN_ASSET):
        directory.token(derive_address("missing"))
    assert directory.collection(nft.address.upper().replace("0X", "0x")) is nft
    assert nft.directory is directory

"""
Two-phase transfer plans and the call journal that makes every public call
all-or-nothing.
"""
from __future__ import annotations

import pytest

from nftmarket.assets.erc20 import MAX_UINT256, PaymentToken
from nftmarket.assets.treasury import Treasury
from nftmarket.access.gate import ControlCenter
from nftmarket.chain.address import derive_address
from nftmarket.chain.clock import CallClock, ManualClock
from nftmarket.chain.journal import Journal
from nftmarket.core.store import ListingStore
from nftmarket.core.types import Listing, ListingKey, ListingStatus
from nftmarket.economics.transfers import TransferPlan
from nftmarket.errors import Reason
from nftmarket.market.events import EventLog

from .helpers import DAY, PRICE, rejects

OWNER = derive_address("owner")
ENGINE = derive_address("engine")
ALICE = derive_address("alice")
BOB = derive_address("bob")


@pytest.fixture
def token():
    gate = ControlCenter(OWNER)
    gate.add_many_to_allow_list(OWNER, [ALICE, BOB, ENGINE])
    t = PaymentToken(derive_address("token"), "Test", "TST", gate=gate)
    t.mint(OWNER, ALICE, 100)
    t.mint(OWNER, ENGINE, 30)
    t.approve(ALICE, ENGINE, 60)
    return t


# ---- TransferPlan ------------------------------------------------------------


def test_pull_and_push_commit_in_order(token):
    plan = TransferPlan(spender=ENGINE)
    plan.pull(token, ALICE, ENGINE, 50).push(token, BOB, 80)
    assert plan.commit() == 2
    assert token.balance_of(ALICE) == 50
    assert token.balance_of(ENGINE) == 0
    assert token.balance_of(BOB) == 80
    assert token.allowance(ALICE, ENGINE) == 10


def test_preflight_rejects_before_any_leg(token):
    plan = TransferPlan(spender=ENGINE)
    plan.push(token, BOB, 30).pull(token, ALICE, ENGINE, 61)
    with rejects(Reason.INSUFFICIENT_ALLOWANCE):
        plan.commit()
    assert token.balance_of(BOB) == 0
    assert token.balance_of(ENGINE) == 30


def test_preflight_accumulates_legs(token):
    plan = TransferPlan(spender=ENGINE)
    plan.push(token, BOB, 20).push(token, BOB, 20)
    with rejects(Reason.INSUFFICIENT_BALANCE):
        plan.preflight()


def test_unlimited_allowance_is_not_consumed(token):
    token.approve(ALICE, ENGINE, MAX_UINT256)
    TransferPlan(spender=ENGINE).pull(token, ALICE, BOB, 100).commit()
    assert token.allowance(ALICE, ENGINE) == MAX_UINT256


def test_zero_legs_are_dropped_and_notify_fires(token):
    treasury = Treasury(derive_address("treasury"))
    plan = TransferPlan(spender=ENGINE)
    plan.push(token, BOB, 0).push(token, treasury.address, 5, memo="fee", notify=treasury)
    assert len(plan.legs) == 1
    plan.commit()
    (r,) = treasury.remittances(token.address)
    assert (r.amount, r.source, r.memo) == (5, ENGINE, "fee")
    with pytest.raises(RuntimeError):
        plan.commit()


# ---- Journal -----------------------------------------------------------------


def test_transaction_reverts_every_participant(token):
    events = EventLog(ManualClock(10))
    journal = Journal([token, events])
    with pytest.raises(RuntimeError):
        with journal.transaction():
            token.transfer(ALICE, BOB, 40)
            events.emit("Moved", amount=40)
            raise RuntimeError("boom")
    assert token.balance_of(BOB) == 0
    assert len(events) == 0


def test_nested_transactions_join_the_outer_one(token):
    journal = Journal([token])
    with pytest.raises(ValueError):
        with journal.transaction():
            with journal.transaction():
                token.transfer(ALICE, BOB, 1)
            token.transfer(ALICE, BOB, 1)
            raise ValueError
    assert token.balance_of(ALICE) == 100


def test_register_rejects_non_journaled():
    with pytest.raises(TypeError):
        Journal([object()])


def test_marketplace_rolls_back_partial_work(dev, seller, list_item):
    # A receiver that rejects the NFT makes the hand-over fail after the
    # listing was already marked sold; nothing of it may survive.
    class Refuser:
        def on_erc721_received(self, *args):
            return "0xdeadbeef"

    contract = derive_address("refuser")
    dev.assets.register_contract(contract, Refuser())
    dev.gate.add_to_allow_list(dev.owner, contract)
    dev.token.mint(dev.owner, contract, 10 ** 30)
    dev.token.approve(contract, dev.market.address, MAX_UINT256)

    item = list_item()
    item.open(dev)
    snapshot = (dev.balance("seller"), dev.token.balance_of(contract), len(dev.market.events))
    with rejects(Reason.RECEIVER_REJECTED):
        dev.market.buy_fixed_price(contract, dev.collection.address, item.token_id)

    listing = dev.market.get_listing(dev.collection.address, item.token_id)
    assert not listing.is_sold
    assert dev.collection.owner_of(item.token_id) == dev.market.address
    assert snapshot == (dev.balance("seller"), dev.token.balance_of(contract), len(dev.market.events))


# ---- Checkpoint cost ---------------------------------------------------------


def _weight(state) -> int:
    """Number of container entries reachable from a checkpoint."""
    if isinstance(state, dict):
        return len(state) + sum(_weight(k) + _weight(v) for k, v in state.items())
    if isinstance(state, (list, tuple, set, frozenset)):
        return len(state) + sum(_weight(v) for v in state)
    return 0


def test_checkpoint_does_not_grow_with_history(dev, seller):
    tid = dev.mint_nft("seller")

    def relist_and_cancel():
        now = dev.clock.now()
        dev.market.create_listing(seller, dev.collection.address, tid, True, False, now + 60, now + 60 + DAY,
                                  dev.token.address, PRICE)
        dev.market.cancel_listing(seller, dev.collection.address, tid)

    relist_and_cancel()
    baseline = _weight(dev.market.journal.checkpoint())
    for _ in range(200):
        relist_and_cancel()

    assert len(dev.market.listing_history(dev.collection.address, tid)) == 201
    assert _weight(dev.market.journal.checkpoint()) == baseline


def test_store_revert_drops_records_closed_inside_the_call():
    store = ListingStore()
    key = ListingKey.of(derive_address("collection"), 7)
    store.put_new(Listing(key=key, seller=ALICE, is_fixed_price=True, is_phygital=False,
                          start_time=10, end_time=20, payment_token=derive_address("token"), amount=5))
    journal = Journal([store])
    with pytest.raises(RuntimeError):
        with journal.transaction():
            store.get(key).status = ListingStatus.SETTLED
            store.close(key, closed_at=15)
            raise RuntimeError("boom")

    assert store.history(key) == []
    assert store.closed_count() == 0
    assert store.get(key).status is ListingStatus.LISTED


def test_clock_never_moves_backwards():
    clock = ManualClock(100)
    clock.advance(5)
    assert clock.now() == 105
    with pytest.raises(ValueError):
        clock.set(104)
    with pytest.raises(ValueError):
        clock.advance(-1)


def test_call_clock_answers_one_timestamp_per_call():
    class Ticking:
        def __init__(self):
            self.t = 100

        def now(self):
            self.t += 1
            return self.t

    clock = CallClock(Ticking())
    with clock.pinned() as t:
        assert clock.now() == clock.now() == t
        with clock.pinned() as inner:
            assert inner == t
        assert clock.now() == t
    assert clock.now() > t

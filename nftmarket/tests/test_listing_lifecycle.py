"""
Seller-side lifecycle: create, update and cancel, with every validation
rejection and the enumeration/history lookups.
"""
from __future__ import annotations

import pytest

from nftmarket.chain.address import derive_address
from nftmarket.core.types import ListingStatus
from nftmarket.errors import AssetError, AuthorizationError, Reason, StateError, ValidationError

from .helpers import DAY, GAP, PRICE, rejects


def _create(dev, caller, tid, *, fixed=True, phygital=False, start=None, end=None, token=None, amount=PRICE, gap=0,
            collection=None):
    now = dev.clock.now()
    start = now + 60 if start is None else start
    end = start + DAY if end is None else end
    return dev.market.create_listing(
        caller, collection or dev.collection.address, tid, fixed, phygital, start, end,
        token or dev.token.address, amount, gap,
    )


def _update(dev, caller, tid, **terms):
    listing = dev.market.get_listing(dev.collection.address, tid)
    merged = dict(
        is_fixed_price=listing.is_fixed_price,
        is_phygital=listing.is_phygital,
        start_time=listing.start_time,
        end_time=listing.end_time,
        payment_token=listing.payment_token,
        amount=listing.amount,
        gap=listing.gap,
    )
    merged.update(terms)
    return dev.market.update_listing(caller, dev.collection.address, tid, **merged)


# ---- create ------------------------------------------------------------------


def test_create_emits_event_and_records_terms(dev, seller):
    tid = dev.mint_nft("seller")
    listing = _create(dev, seller, tid, fixed=False, gap=GAP)
    assert listing.is_auction and listing.gap == GAP
    ev = dev.market.events.last("ListingCreated")
    assert ev.args["token_id"] == tid and ev.args["seller"] == seller
    assert ev.args["amount"] == PRICE


def test_fixed_price_ignores_gap(dev, seller):
    tid = dev.mint_nft("seller")
    assert _create(dev, seller, tid, gap=GAP).gap == 0


def test_create_rejects_unaccepted_payment_token(dev, seller):
    tid = dev.mint_nft("seller")
    with rejects(Reason.PAYMENT_UNACCEPTED, ValidationError):
        _create(dev, seller, tid, token=derive_address("not-a-payment-token"))


def test_create_rejects_start_not_in_the_future(dev, seller):
    tid = dev.mint_nft("seller")
    with rejects(Reason.STARTED, ValidationError):
        _create(dev, seller, tid, start=dev.clock.now())


def test_create_rejects_empty_window(dev, seller):
    tid = dev.mint_nft("seller")
    start = dev.clock.now() + 60
    with rejects(Reason.INVALID_END_TIME, ValidationError):
        _create(dev, seller, tid, start=start, end=start)
    with rejects(Reason.INVALID_END_TIME, ValidationError):
        _create(dev, seller, tid, start=start, end=start - 1)


def test_create_rejects_auction_without_gap(dev, seller):
    tid = dev.mint_nft("seller")
    with rejects(Reason.GAP_ZERO, ValidationError):
        _create(dev, seller, tid, fixed=False, gap=0)


@pytest.mark.parametrize("amount", [-1, 1.5, True, "100"])
def test_create_rejects_malformed_amount(dev, seller, amount):
    tid = dev.mint_nft("seller")
    with rejects(Reason.INVALID_AMOUNT, ValidationError):
        _create(dev, seller, tid, amount=amount)


def test_create_rejects_occupied_key(dev, seller):
    tid = dev.mint_nft("seller")
    _create(dev, seller, tid)
    with rejects(Reason.LISTED, StateError):
        _create(dev, seller, tid)


def test_create_requires_nft_ownership(dev, seller, stranger):
    tid = dev.mint_nft("seller")
    with rejects(Reason.NOT_OWNER, AssetError):
        _create(dev, stranger, tid)
    assert dev.market.get_listing(dev.collection.address, tid) is None
    assert dev.collection.owner_of(tid) == seller


def test_create_rejects_unknown_collection(dev, seller):
    with rejects(Reason.UNKNOWN_ASSET, ValidationError):
        _create(dev, seller, 0, collection=derive_address("elsewhere"))


def test_create_rejects_malformed_addresses(dev, seller):
    tid = dev.mint_nft("seller")
    with rejects(Reason.INVALID_ADDRESS, ValidationError):
        _create(dev, seller, tid, collection="0x1234")
    with rejects(Reason.INVALID_TOKEN_ID, ValidationError):
        _create(dev, seller, -1)


# ---- update ------------------------------------------------------------------


def test_seller_updates_terms(dev, seller):
    tid = dev.mint_nft("seller")
    _create(dev, seller, tid)
    updated = _update(dev, seller, tid, amount=PRICE * 2, is_phygital=True)
    assert updated.amount == PRICE * 2 and updated.is_phygital
    assert dev.market.events.last("ListingUpdated").args["amount"] == PRICE * 2


def test_update_may_move_start_into_the_past(dev, seller):
    tid = dev.mint_nft("seller")
    _create(dev, seller, tid)
    now = dev.clock.now()
    updated = _update(dev, seller, tid, start_time=now - 10, end_time=now + DAY)
    assert updated.is_open(now)


def test_update_revalidates_terms(dev, seller):
    tid = dev.mint_nft("seller")
    _create(dev, seller, tid)
    with rejects(Reason.GAP_ZERO):
        _update(dev, seller, tid, is_fixed_price=False, gap=0)
    with rejects(Reason.PAYMENT_UNACCEPTED):
        _update(dev, seller, tid, payment_token=derive_address("nope"))
    listing = dev.market.get_listing(dev.collection.address, tid)
    with rejects(Reason.INVALID_END_TIME):
        _update(dev, seller, tid, end_time=listing.start_time)


def test_update_by_non_seller_is_forbidden(dev, seller, stranger):
    tid = dev.mint_nft("seller")
    _create(dev, seller, tid)
    with rejects(Reason.FORBIDDEN, AuthorizationError):
        _update(dev, stranger, tid, amount=1)


def test_running_auction_is_mutable_until_first_bid(dev, seller, bidder_a, list_item):
    item = list_item(fixed=False)
    item.open(dev)
    _update(dev, seller, item.token_id, amount=PRICE // 2)
    dev.market.bid(bidder_a, dev.collection.address, item.token_id, PRICE // 2 + GAP)
    with rejects(Reason.SOLD, StateError):
        _update(dev, seller, item.token_id, amount=PRICE)


def test_update_unknown_listing(dev, seller):
    tid = dev.mint_nft("seller")
    with rejects(Reason.UNLISTED, StateError):
        dev.market.update_listing(seller, dev.collection.address, tid, True, False, 1, 2, dev.token.address, 1)


# ---- cancel ------------------------------------------------------------------


def test_cancel_fixed_price_returns_nft(dev, seller, list_item):
    item = list_item()
    item.open(dev)
    dev.market.cancel_listing(seller, dev.collection.address, item.token_id)
    assert dev.collection.owner_of(item.token_id) == seller
    assert dev.market.get_listing(dev.collection.address, item.token_id) is None
    (closed,) = dev.market.listing_history(dev.collection.address, item.token_id)
    assert closed.listing.status is ListingStatus.CANCELLED
    assert dev.market.events.last("ListingCancelled").args["seller"] == seller


def test_auction_cannot_be_cancelled_while_running(dev, seller, list_item):
    early = list_item(fixed=False)
    dev.market.cancel_listing(seller, dev.collection.address, early.token_id)

    running = list_item(fixed=False)
    running.open(dev)
    with rejects(Reason.LISTING, StateError):
        dev.market.cancel_listing(seller, dev.collection.address, running.token_id)


def test_auction_with_bid_cannot_be_cancelled(dev, seller, bidder_a, list_item):
    item = list_item(fixed=False)
    item.open(dev)
    dev.market.bid(bidder_a, dev.collection.address, item.token_id, PRICE + GAP)
    item.close(dev)
    with rejects(Reason.SOLD, StateError):
        dev.market.cancel_listing(seller, dev.collection.address, item.token_id)


def test_cancel_by_non_seller_is_forbidden(dev, stranger, list_item):
    item = list_item()
    with rejects(Reason.FORBIDDEN, AuthorizationError):
        dev.market.cancel_listing(stranger, dev.collection.address, item.token_id)


# ---- lookups -----------------------------------------------------------------


def test_listings_filters(dev, seller, list_item):
    fixed = list_item()
    auction = list_item(fixed=False)
    phygital = list_item(phygital=True)

    def ids(**kw):
        return [l.key.token_id for l in dev.market.listings(**kw)]

    assert ids() == [fixed.token_id, auction.token_id, phygital.token_id]
    assert ids(is_fixed_price=False) == [auction.token_id]
    assert ids(is_phygital=True) == [phygital.token_id]
    assert ids(seller=seller.upper().replace("0X", "0x"), status=ListingStatus.LISTED) == ids()
    assert ids(seller=derive_address("nobody")) == []


def test_lookups_return_copies(dev, list_item):
    item = list_item()
    copy = dev.market.get_listing(dev.collection.address, item.token_id)
    copy.amount = 1
    assert dev.market.get_listing(dev.collection.address, item.token_id).amount == PRICE


def test_history_lookup_returns_copies(dev, buyer, list_item):
    item = list_item(phygital=True)
    item.open(dev)
    dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)
    dev.market.confirm_received(buyer, dev.collection.address, item.token_id)

    (closed,) = dev.market.listing_history(dev.collection.address, item.token_id)
    closed.listing.amount = 1
    closed.delivery.amount = 1
    (again,) = dev.market.listing_history(dev.collection.address, item.token_id)
    assert again.listing.amount == PRICE
    assert again.delivery.amount == PRICE

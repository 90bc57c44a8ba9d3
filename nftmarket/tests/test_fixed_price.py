"""
Fixed-price listings: purchase, fee split, window boundaries and the
post-sale state of the listing key.
"""
from __future__ import annotations

from nftmarket.core.types import ListingStatus
from nftmarket.economics.settlement import SettlementReceipt
from nftmarket.errors import Reason, StateError

from .helpers import DAY, PRICE, rejects


def test_purchase_pays_seller_and_treasury(dev, seller, buyer, list_item):
    item = list_item()
    before = dev.balance("buyer")
    item.open(dev)

    receipt = dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)

    fee = PRICE * 125 // 10_000
    assert isinstance(receipt, SettlementReceipt)
    assert (receipt.gross, receipt.fee, receipt.proceeds) == (PRICE, fee, PRICE - fee)
    assert dev.collection.owner_of(item.token_id) == buyer
    assert dev.balance("buyer") == before - PRICE
    assert dev.balance("seller") == PRICE - fee
    assert dev.token.balance_of(dev.treasury.address) == fee
    assert dev.treasury.total_received(dev.token.address) == fee
    assert dev.token.balance_of(dev.market.address) == 0


def test_listing_takes_custody_of_the_nft(dev, seller, list_item):
    item = list_item()
    assert dev.collection.owner_of(item.token_id) == dev.market.address
    listing = dev.market.get_listing(dev.collection.address, item.token_id)
    assert listing.seller == seller
    assert listing.status is ListingStatus.LISTED
    assert listing.gap == 0
    assert not listing.is_sold


def test_sold_listing_moves_to_history(dev, buyer, list_item):
    item = list_item()
    item.open(dev)
    dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)

    assert dev.market.get_listing(dev.collection.address, item.token_id) is None
    (closed,) = dev.market.listing_history(dev.collection.address, item.token_id)
    assert closed.listing.status is ListingStatus.SETTLED
    assert closed.listing.buyer == buyer
    assert closed.delivery is None

    with rejects(Reason.UNLISTED, StateError):
        dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)


def test_buy_before_start_is_rejected(dev, buyer, list_item):
    item = list_item()
    dev.clock.set(item.start - 1)
    with rejects(Reason.NOT_STARTED, StateError):
        dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)


def test_buy_at_end_is_rejected_but_one_second_earlier_succeeds(dev, buyer, list_item):
    on_time = list_item()
    late = list_item()

    dev.clock.set(on_time.end - 1)
    dev.market.buy_fixed_price(buyer, dev.collection.address, on_time.token_id)
    assert dev.collection.owner_of(on_time.token_id) == buyer

    dev.clock.set(late.end)
    with rejects(Reason.ENDED, StateError):
        dev.market.buy_fixed_price(buyer, dev.collection.address, late.token_id)


def test_bidding_on_a_fixed_price_item_is_rejected(dev, buyer, list_item):
    item = list_item()
    item.open(dev)
    with rejects(Reason.NOT_AUCTION, StateError):
        dev.market.bid(buyer, dev.collection.address, item.token_id, PRICE * 2)


def test_buying_an_auction_item_is_rejected(dev, buyer, list_item):
    item = list_item(fixed=False)
    item.open(dev)
    with rejects(Reason.AUCTION_ITEM, StateError):
        dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)


def test_unfunded_buyer_leaves_everything_untouched(dev, seller, list_item):
    poor = dev.fund("stranger", PRICE // 2)
    item = list_item()
    item.open(dev)
    events_before = len(dev.market.events)

    with rejects(Reason.INSUFFICIENT_BALANCE):
        dev.market.buy_fixed_price(poor, dev.collection.address, item.token_id)

    assert dev.collection.owner_of(item.token_id) == dev.market.address
    listing = dev.market.get_listing(dev.collection.address, item.token_id)
    assert not listing.is_sold and listing.status is ListingStatus.LISTED
    assert dev.balance("stranger") == PRICE // 2
    assert len(dev.market.events) == events_before


def test_fee_uses_the_rate_at_sale_time(dev, buyer, list_item):
    item = list_item()
    dev.market.update_service_fee_percent(dev.owner, 250)
    item.open(dev)
    receipt = dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)
    assert receipt.fee_bps == 250
    assert receipt.fee == PRICE * 250 // 10_000


def test_window_can_be_a_single_second(dev, buyer, list_item):
    item = list_item(duration=1)
    item.open(dev)
    dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)
    assert dev.collection.owner_of(item.token_id) == buyer


def test_relisting_after_sale_uses_a_fresh_key_slot(dev, seller, buyer, list_item):
    item = list_item()
    item.open(dev)
    dev.market.buy_fixed_price(buyer, dev.collection.address, item.token_id)

    # buyer lists the same token again
    dev.collection.set_approval_for_all(buyer, dev.market.address, True)
    now = dev.clock.now()
    dev.market.create_listing(
        buyer, dev.collection.address, item.token_id, True, False,
        now + 10, now + 10 + DAY, dev.token.address, PRICE,
    )
    relisted = dev.market.get_listing(dev.collection.address, item.token_id)
    assert relisted.seller == buyer
    assert len(dev.market.listing_history(dev.collection.address, item.token_id)) == 1

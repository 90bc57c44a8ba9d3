"""
Listing engine: the per-(collection, token_id) state machine.

Lifecycle
---------
    create  ──► LISTED ──(buy / process_payment)──► settled now (non-phygital)
                  │                                 └► AWAITING_DELIVERY (phygital)
                  ├──(bid)──► LISTED with a high bidder (auction only)
                  └──(cancel)──► CANCELLED (NFT back to seller)

Rules
-----
- The NFT is pulled into engine custody at creation and stays there until the
  sale or the cancellation.
- Purchases and bids are accepted only inside the half-open window
  ``[start_time, end_time)``.
- The seller may update or cancel only while nothing is sold; for auctions a
  bid counts as a sale. An auction cannot be cancelled while its window is
  open, bid or no bid.
- Every accepted bid must reach ``current amount + gap``. The new bid is pulled
  and the previous bidder refunded in one two-phase transfer plan.
- After ``end_time`` only the high bidder may call ``process_payment``.

Pause, deny-list and atomicity are applied by the `Marketplace` facade.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from ..assets.directory import AssetDirectory
from ..chain.address import ZERO_ADDRESS, normalize_address
from ..chain.clock import Clock
from ..core.registry import AssetRegistry
from ..core.settings import ConfigStore
from ..core.store import ListingStore
from ..core.types import DeliveryOrder, Listing, ListingKey, ListingStatus
from ..economics.settlement import SettlementEngine, SettlementReceipt
from ..economics.transfers import TransferPlan
from ..errors import AuthorizationError, Reason, StateError, ValidationError
from .delivery import DeliveryEscrow
from .events import EventLog

log = logging.getLogger(__name__)

SaleOutcome = Union[SettlementReceipt, DeliveryOrder]


def _check_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(Reason.INVALID_AMOUNT, f"{name} must be a non-negative integer", details={name: repr(value)})
    return value


class ListingEngine:
    def __init__(
        self,
        *,
        engine_address: str,
        store: ListingStore,
        registry: AssetRegistry,
        settings: ConfigStore,
        clock: Clock,
        assets: AssetDirectory,
        settlement: SettlementEngine,
        delivery: DeliveryEscrow,
        events: EventLog,
    ) -> None:
        self.engine_address = engine_address.lower()
        self.store = store
        self.registry = registry
        self.settings = settings
        self.clock = clock
        self.assets = assets
        self.settlement = settlement
        self.delivery = delivery
        self.events = events

    # ---- Lookup ------------------------------------------------------------

    def get(self, key: ListingKey) -> Optional[Listing]:
        return self.store.get(key)

    def _require(self, key: ListingKey) -> Listing:
        listing = self.store.get(key)
        if listing is None:
            raise StateError(Reason.UNLISTED, details={"listing": str(key)})
        return listing

    # ---- Validation --------------------------------------------------------

    def _validate_terms(
        self,
        *,
        is_fixed_price: bool,
        start_time: int,
        end_time: int,
        payment_token: str,
        amount: int,
        gap: int,
        reject_started: bool,
        now: int,
    ) -> None:
        start_time = _check_int("start_time", start_time)
        end_time = _check_int("end_time", end_time)
        _check_int("amount", amount)
        _check_int("gap", gap)
        if not self.registry.is_payment_token(payment_token):
            raise ValidationError(Reason.PAYMENT_UNACCEPTED, details={"payment_token": payment_token})
        if reject_started and start_time <= now:
            raise ValidationError(Reason.STARTED, details={"start_time": start_time, "now": now})
        if end_time <= start_time:
            raise ValidationError(Reason.INVALID_END_TIME, details={"start_time": start_time, "end_time": end_time})
        if not is_fixed_price and gap == 0:
            raise ValidationError(Reason.GAP_ZERO)

    def _require_seller(self, listing: Listing, caller: str) -> None:
        if caller.lower() != listing.seller:
            raise AuthorizationError(Reason.FORBIDDEN, details={"caller": caller, "seller": listing.seller})

    @staticmethod
    def _require_unsold(listing: Listing) -> None:
        if listing.is_sold or listing.status is not ListingStatus.LISTED:
            raise StateError(Reason.SOLD, details={"listing": str(listing.key), "status": listing.status.value})

    # ---- Seller operations -------------------------------------------------

    def create(
        self,
        seller: str,
        key: ListingKey,
        *,
        is_fixed_price: bool,
        is_phygital: bool,
        start_time: int,
        end_time: int,
        payment_token: str,
        amount: int,
        gap: int = 0,
    ) -> Listing:
        seller = normalize_address(seller, field="seller")
        payment_token = normalize_address(payment_token, field="payment_token")
        now = self.clock.now()
        self._validate_terms(
            is_fixed_price=is_fixed_price,
            start_time=start_time,
            end_time=end_time,
            payment_token=payment_token,
            amount=amount,
            gap=gap,
            reject_started=True,
            now=now,
        )
        if key in self.store:
            raise StateError(Reason.LISTED, details={"listing": str(key)})

        collection = self.assets.collection(key.collection)
        collection.safe_transfer_from(self.engine_address, seller, self.engine_address, key.token_id)

        listing = Listing(
            key=key,
            seller=seller,
            is_fixed_price=bool(is_fixed_price),
            is_phygital=bool(is_phygital),
            start_time=start_time,
            end_time=end_time,
            payment_token=payment_token,
            amount=amount,
            gap=0 if is_fixed_price else gap,
            created_at=now,
        )
        self.store.put_new(listing)
        self.events.emit("ListingCreated", **self._event_terms(listing))
        log.info("listing created %s seller=%s fixed=%s phygital=%s", key, seller, is_fixed_price, is_phygital)
        return listing

    def update(
        self,
        seller: str,
        key: ListingKey,
        *,
        is_fixed_price: bool,
        is_phygital: bool,
        start_time: int,
        end_time: int,
        payment_token: str,
        amount: int,
        gap: int = 0,
    ) -> Listing:
        listing = self._require(key)
        self._require_seller(listing, seller)
        self._require_unsold(listing)
        payment_token = normalize_address(payment_token, field="payment_token")
        self._validate_terms(
            is_fixed_price=is_fixed_price,
            start_time=start_time,
            end_time=end_time,
            payment_token=payment_token,
            amount=amount,
            gap=gap,
            reject_started=False,
            now=self.clock.now(),
        )
        listing.is_fixed_price = bool(is_fixed_price)
        listing.is_phygital = bool(is_phygital)
        listing.start_time = start_time
        listing.end_time = end_time
        listing.payment_token = payment_token
        listing.amount = amount
        listing.gap = 0 if is_fixed_price else gap
        self.events.emit("ListingUpdated", **self._event_terms(listing))
        log.info("listing updated %s", key)
        return listing

    def cancel(self, seller: str, key: ListingKey) -> Listing:
        listing = self._require(key)
        self._require_seller(listing, seller)
        self._require_unsold(listing)
        now = self.clock.now()
        if listing.is_auction and listing.is_open(now):
            raise StateError(Reason.LISTING, details={"listing": str(key), "start_time": listing.start_time,
                                                       "end_time": listing.end_time, "now": now})

        collection = self.assets.collection(key.collection)
        collection.transfer_from(self.engine_address, self.engine_address, listing.seller, key.token_id)
        listing.status = ListingStatus.CANCELLED
        self.store.close(key, closed_at=now)
        self.events.emit("ListingCancelled", **key.to_dict(), seller=listing.seller,
                         is_fixed_price=listing.is_fixed_price)
        log.info("listing cancelled %s", key)
        return listing

    # ---- Buyer operations --------------------------------------------------

    def buy_fixed_price(self, buyer: str, key: ListingKey) -> SaleOutcome:
        listing = self._require(key)
        if not listing.is_fixed_price:
            raise StateError(Reason.AUCTION_ITEM, details={"listing": str(key)})
        self._require_unsold(listing)
        now = self.clock.now()
        if now < listing.start_time:
            raise StateError(Reason.NOT_STARTED, details={"start_time": listing.start_time, "now": now})
        if now >= listing.end_time:
            raise StateError(Reason.ENDED, details={"end_time": listing.end_time, "now": now})

        listing.buyer = buyer.lower()
        listing.sold_at = now
        return self._hand_over(listing, funds_escrowed=False, now=now)

    def bid(self, bidder: str, key: ListingKey, amount: int) -> Listing:
        listing = self._require(key)
        if listing.is_fixed_price:
            raise StateError(Reason.NOT_AUCTION, details={"listing": str(key)})
        if listing.status is not ListingStatus.LISTED:
            raise StateError(Reason.SOLD, details={"listing": str(key), "status": listing.status.value})
        now = self.clock.now()
        if now < listing.start_time:
            raise StateError(Reason.NOT_STARTED, details={"start_time": listing.start_time, "now": now})
        if now >= listing.end_time:
            raise StateError(Reason.AUCTION_ENDED, details={"end_time": listing.end_time, "now": now})
        _check_int("amount", amount)
        minimum = listing.amount + listing.gap
        if amount < minimum:
            raise ValidationError(Reason.AMOUNT_TOO_LOW, details={"amount": amount, "minimum": minimum})

        bidder = bidder.lower()
        previous, previous_amount = listing.bidder, listing.amount
        token = self.assets.token(listing.payment_token)
        plan = TransferPlan(spender=self.engine_address)
        # Refund first: a leading bidder raising their own bid pays only the difference.
        if previous != ZERO_ADDRESS:
            plan.push(token, previous, previous_amount, memo=f"refund:{key}")
        plan.pull(token, bidder, self.engine_address, amount, memo=f"bid:{key}")
        plan.commit()

        listing.buyer = bidder
        listing.amount = amount
        self.events.emit("BidPlaced", **key.to_dict(), bidder=bidder, amount=amount)
        if previous != ZERO_ADDRESS:
            self.events.emit("BidRefunded", **key.to_dict(), bidder=previous, amount=previous_amount)
            log.info("bid %s amount=%d by=%s (refunded %d to %s)", key, amount, bidder, previous_amount, previous)
        else:
            log.info("bid %s amount=%d by=%s", key, amount, bidder)
        return listing

    def process_payment(self, caller: str, key: ListingKey) -> SaleOutcome:
        listing = self._require(key)
        if listing.is_fixed_price:
            raise StateError(Reason.NOT_AUCTION, details={"listing": str(key)})
        if listing.status is not ListingStatus.LISTED:
            raise StateError(Reason.SOLD, details={"listing": str(key), "status": listing.status.value})
        now = self.clock.now()
        if now < listing.end_time:
            raise StateError(Reason.AUCTION_ACTIVE, details={"end_time": listing.end_time, "now": now})
        if not listing.is_sold or caller.lower() != listing.bidder:
            raise AuthorizationError(Reason.FORBIDDEN, details={"caller": caller, "bidder": listing.bidder})

        listing.sold_at = now
        return self._hand_over(listing, funds_escrowed=True, now=now)

    # ---- Internals ---------------------------------------------------------

    def _hand_over(self, listing: Listing, *, funds_escrowed: bool, now: int) -> SaleOutcome:
        """Deliver the NFT to the buyer, then settle now or open a delivery order."""
        key = listing.key
        collection = self.assets.collection(key.collection)
        collection.safe_transfer_from(self.engine_address, self.engine_address, listing.buyer, key.token_id)
        self.events.emit(
            "ItemSold",
            **key.to_dict(),
            seller=listing.seller,
            buyer=listing.buyer,
            amount=listing.amount,
            is_fixed_price=listing.is_fixed_price,
            is_phygital=listing.is_phygital,
        )
        log.info("item sold %s buyer=%s amount=%d", key, listing.buyer, listing.amount)

        if listing.is_phygital:
            return self.delivery.open(listing, funds_escrowed=funds_escrowed, now=now)

        receipt = self.settlement.settle(
            listing,
            listing.amount,
            fee_bps=self.settings.service_fee_bps,
            payer=None if funds_escrowed else listing.buyer,
        )
        self.store.close(key, closed_at=now)
        return receipt

    @staticmethod
    def _event_terms(listing: Listing) -> Dict[str, Any]:
        return {
            **listing.key.to_dict(),
            "seller": listing.seller,
            "is_fixed_price": listing.is_fixed_price,
            "is_phygital": listing.is_phygital,
            "start_time": listing.start_time,
            "end_time": listing.end_time,
            "payment_token": listing.payment_token,
            "amount": listing.amount,
            "gap": listing.gap,
        }


__all__ = ["ListingEngine", "SaleOutcome"]

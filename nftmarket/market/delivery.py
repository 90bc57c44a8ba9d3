"""
Phygital delivery escrow.

States
------
none -> AWAITING_CONFIRMATION -> CONFIRMED   (settlement ran, NFT stays with buyer)
                              -> CANCELLED   (NFT back to seller, escrowed funds back to bidder)

*Overdue* is derived: once ``now > next_update_deadline`` confirmation is
rejected with ``OVERDUE`` while cancellation stays available to either party.

Funds
-----
- Won auctions: the winning bid is already in engine custody
  (``funds_escrowed=True``); confirmation settles from custody, cancellation
  refunds the bidder.
- Phygital buy-now: nothing was taken at purchase; confirmation pulls the
  price from the buyer, cancellation moves no funds.

The fee rate and the deadline are fixed when the order is opened.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..assets.directory import AssetDirectory
from ..chain.clock import Clock
from ..core.settings import ConfigStore
from ..core.store import ListingStore
from ..core.types import DeliveryOrder, DeliveryState, Listing, ListingKey, ListingStatus
from ..economics.settlement import SettlementEngine, SettlementReceipt
from ..economics.transfers import TransferPlan
from ..errors import AuthorizationError, Reason, StateError
from .events import EventLog

log = logging.getLogger(__name__)


class DeliveryEscrow:
    def __init__(
        self,
        *,
        engine_address: str,
        store: ListingStore,
        settings: ConfigStore,
        clock: Clock,
        assets: AssetDirectory,
        settlement: SettlementEngine,
        events: EventLog,
    ) -> None:
        self.engine_address = engine_address.lower()
        self.store = store
        self.settings = settings
        self.clock = clock
        self.assets = assets
        self.settlement = settlement
        self.events = events

    def get(self, key: ListingKey) -> Optional[DeliveryOrder]:
        return self.store.get_order(key)

    def open(self, listing: Listing, *, funds_escrowed: bool, now: int) -> DeliveryOrder:
        snap = self.settings.snapshot_values()
        order = DeliveryOrder(
            key=listing.key,
            seller=listing.seller,
            buyer=listing.buyer,
            payment_token=listing.payment_token,
            amount=listing.amount,
            funds_escrowed=funds_escrowed,
            fee_bps=snap.service_fee_bps,
            opened_at=now,
            next_update_deadline=now + snap.delivery_duration,
        )
        listing.status = ListingStatus.AWAITING_DELIVERY
        self.store.put_order(order)
        self.events.emit(
            "DeliveryOpened",
            **listing.key.to_dict(),
            buyer=order.buyer,
            amount=order.amount,
            funds_escrowed=funds_escrowed,
            next_update_deadline=order.next_update_deadline,
        )
        log.info("delivery opened %s buyer=%s deadline=%d", listing.key, order.buyer, order.next_update_deadline)
        return order

    def _awaiting(self, key: ListingKey) -> Tuple[Listing, DeliveryOrder]:
        order = self.store.get_order(key)
        listing = self.store.get(key)
        if order is None or listing is None or not order.is_awaiting:
            raise StateError(Reason.UNSOLD, details={"listing": str(key)})
        return listing, order

    def confirm_received(self, caller: str, key: ListingKey) -> SettlementReceipt:
        listing, order = self._awaiting(key)
        caller = caller.lower()
        if caller != order.buyer:
            raise AuthorizationError(Reason.FORBIDDEN, details={"caller": caller, "listing": str(key)})
        now = self.clock.now()
        if now > order.next_update_deadline:
            raise StateError(
                Reason.OVERDUE,
                details={"listing": str(key), "deadline": order.next_update_deadline, "now": now},
            )

        receipt = self.settlement.settle(
            listing,
            order.amount,
            fee_bps=order.fee_bps,
            payer=None if order.funds_escrowed else order.buyer,
            source="delivery",
        )
        order.state = DeliveryState.CONFIRMED
        order.closed_at = now
        self.store.close(key, closed_at=now)
        self.events.emit("DeliveryConfirmed", **key.to_dict(), buyer=order.buyer, amount=order.amount)
        log.info("delivery confirmed %s", key)
        return receipt

    def cancel(self, caller: str, key: ListingKey) -> DeliveryOrder:
        listing, order = self._awaiting(key)
        caller = caller.lower()
        if caller not in (order.buyer, order.seller):
            raise AuthorizationError(Reason.FORBIDDEN, details={"caller": caller, "listing": str(key)})
        now = self.clock.now()

        collection = self.assets.collection(key.collection)
        collection.transfer_from(self.engine_address, order.buyer, order.seller, key.token_id)
        if order.funds_escrowed:
            token = self.assets.token(order.payment_token)
            TransferPlan(spender=self.engine_address).push(
                token, order.buyer, order.amount, memo=f"delivery-refund:{key}"
            ).commit()

        order.state = DeliveryState.CANCELLED
        order.closed_at = now
        listing.status = ListingStatus.CANCELLED
        self.store.close(key, closed_at=now)
        self.events.emit(
            "DeliveryCancelled",
            **key.to_dict(),
            by=caller,
            refunded=order.amount if order.funds_escrowed else 0,
            overdue=now > order.next_update_deadline,
        )
        log.info("delivery cancelled %s by=%s", key, caller)
        return order


__all__ = ["DeliveryEscrow"]

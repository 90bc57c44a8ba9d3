"""
Marketplace facade: the engine's public surface.

Wires the components (AssetRegistry, ConfigStore, ListingEngine,
SettlementEngine, DeliveryEscrow, PauseGate) and applies the cross-cutting
guards uniformly:

- every mutating call runs under one lock inside one journal transaction
  (all-or-nothing across listings, balances, ownership, settings and events);
- trading calls are rejected while paused;
- deny-listed callers are rejected everywhere, and deny-listed sellers cannot
  be traded with;
- admin setters require the treasurer (fee, payment tokens, rescue) or the
  moderator (delivery window, pause) role.

Every operation takes the acting address as its first argument. Lookups return
copies; mutating the returned records does not touch engine state.

Typical flow
------------
    market.create_listing(seller, collection, 0, True, False, t0 + 60, t0 + 86_460, token, price)
    clock.set(t0 + 60)
    market.buy_fixed_price(buyer, collection, 0)
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import List, Optional

from ..access.gate import AccessGate, Role
from ..access.guards import atomic, not_denied, only_role, when_not_paused
from ..assets.directory import AssetDirectory
from ..assets.erc721 import ERC721_RECEIVED
from ..assets.interfaces import FundsReceiver
from ..chain.address import normalize_address
from ..chain.clock import CallClock, Clock
from ..chain.journal import Journal, Journaled
from ..config import MarketConfig
from ..core.pause import PauseGate
from ..core.registry import AssetRegistry
from ..core.settings import ConfigStore
from ..core.store import ListingStore
from ..core.types import ClosedListing, DeliveryOrder, Listing, ListingKey, ListingStatus
from ..economics.settlement import SettlementEngine, SettlementReceipt
from ..economics.split import FeeSplit, split_fee
from ..economics.transfers import TransferPlan
from ..errors import AuthorizationError, Reason, ValidationError
from .delivery import DeliveryEscrow
from .events import EventLog
from .listing import ListingEngine, SaleOutcome

log = logging.getLogger(__name__)


def _copy(record):
    return dataclasses.replace(record) if record is not None else None


class Marketplace:
    def __init__(
        self,
        *,
        address: str,
        gate: AccessGate,
        assets: AssetDirectory,
        treasury: FundsReceiver,
        clock: Clock,
        config: Optional[MarketConfig] = None,
    ) -> None:
        cfg = config or MarketConfig()
        cfg.validate()
        self.address = normalize_address(address, field="marketplace")
        self.gate = gate
        self.assets = assets
        self.treasury = treasury
        self.clock = clock
        self.call_clock = CallClock(clock)

        self.settings = ConfigStore.from_config(cfg)
        self.registry = AssetRegistry(cfg.payment_tokens)
        self.pause_gate = PauseGate()
        self.store = ListingStore()
        self.events = EventLog(self.call_clock)
        self.settlement = SettlementEngine(
            engine_address=self.address, assets=assets, treasury=treasury, events=self.events
        )
        self.delivery = DeliveryEscrow(
            engine_address=self.address,
            store=self.store,
            settings=self.settings,
            clock=self.call_clock,
            assets=assets,
            settlement=self.settlement,
            events=self.events,
        )
        self.engine = ListingEngine(
            engine_address=self.address,
            store=self.store,
            registry=self.registry,
            settings=self.settings,
            clock=self.call_clock,
            assets=assets,
            settlement=self.settlement,
            delivery=self.delivery,
            events=self.events,
        )

        self.journal = Journal([self.store, self.registry, self.settings, self.pause_gate, self.events, assets])
        for extra in (treasury, gate):
            if isinstance(extra, Journaled):
                self.journal.register(extra)
        self._lock = threading.RLock()

        assets.register_contract(self.address, self)
        log.info("marketplace ready at %s fee=%dbps delivery=%ds",
                 self.address, self.settings.service_fee_bps, self.settings.delivery_duration)

    # ---- Helpers -----------------------------------------------------------

    @staticmethod
    def _key(collection: str, token_id: int) -> ListingKey:
        return ListingKey.of(collection, token_id)

    def _require_counterparty(self, key: ListingKey) -> None:
        listing = self.engine.get(key)
        if listing is not None and self.gate.is_denied(listing.seller):
            raise AuthorizationError(Reason.DENIED, details={"account": listing.seller, "role": "seller"})

    # ---- Listings ----------------------------------------------------------

    @atomic("create_listing")
    @when_not_paused
    @not_denied
    def create_listing(
        self,
        caller: str,
        collection: str,
        token_id: int,
        is_fixed_price: bool,
        is_phygital: bool,
        start_time: int,
        end_time: int,
        payment_token: str,
        amount: int,
        gap: int = 0,
    ) -> Listing:
        listing = self.engine.create(
            normalize_address(caller, field="caller"),
            self._key(collection, token_id),
            is_fixed_price=is_fixed_price,
            is_phygital=is_phygital,
            start_time=start_time,
            end_time=end_time,
            payment_token=payment_token,
            amount=amount,
            gap=gap,
        )
        return _copy(listing)

    @atomic("update_listing")
    @when_not_paused
    @not_denied
    def update_listing(
        self,
        caller: str,
        collection: str,
        token_id: int,
        is_fixed_price: bool,
        is_phygital: bool,
        start_time: int,
        end_time: int,
        payment_token: str,
        amount: int,
        gap: int = 0,
    ) -> Listing:
        listing = self.engine.update(
            normalize_address(caller, field="caller"),
            self._key(collection, token_id),
            is_fixed_price=is_fixed_price,
            is_phygital=is_phygital,
            start_time=start_time,
            end_time=end_time,
            payment_token=payment_token,
            amount=amount,
            gap=gap,
        )
        return _copy(listing)

    @atomic("cancel_listing")
    @when_not_paused
    @not_denied
    def cancel_listing(self, caller: str, collection: str, token_id: int) -> Listing:
        return _copy(self.engine.cancel(normalize_address(caller, field="caller"), self._key(collection, token_id)))

    # ---- Trading -----------------------------------------------------------

    @atomic("buy_fixed_price")
    @when_not_paused
    @not_denied
    def buy_fixed_price(self, caller: str, collection: str, token_id: int) -> SaleOutcome:
        key = self._key(collection, token_id)
        self._require_counterparty(key)
        return _copy(self.engine.buy_fixed_price(normalize_address(caller, field="caller"), key))

    @atomic("bid")
    @when_not_paused
    @not_denied
    def bid(self, caller: str, collection: str, token_id: int, amount: int) -> Listing:
        key = self._key(collection, token_id)
        self._require_counterparty(key)
        return _copy(self.engine.bid(normalize_address(caller, field="caller"), key, amount))

    @atomic("process_payment")
    @when_not_paused
    @not_denied
    def process_payment(self, caller: str, collection: str, token_id: int) -> SaleOutcome:
        key = self._key(collection, token_id)
        self._require_counterparty(key)
        return _copy(self.engine.process_payment(normalize_address(caller, field="caller"), key))

    # ---- Phygital delivery -------------------------------------------------

    @atomic("confirm_received")
    @when_not_paused
    @not_denied
    def confirm_received(self, caller: str, collection: str, token_id: int) -> SettlementReceipt:
        return self.delivery.confirm_received(normalize_address(caller, field="caller"), self._key(collection, token_id))

    @atomic("cancel_delivery")
    @when_not_paused
    @not_denied
    def cancel(self, caller: str, collection: str, token_id: int) -> DeliveryOrder:
        return _copy(self.delivery.cancel(normalize_address(caller, field="caller"), self._key(collection, token_id)))

    # ---- Admin -------------------------------------------------------------

    @atomic("update_service_fee_percent")
    @only_role(Role.TREASURER)
    @not_denied
    def update_service_fee_percent(self, caller: str, bps: int) -> int:
        prev = self.settings.update_service_fee_percent(bps)
        self.events.emit("ServiceFeeUpdated", previous=prev, current=bps, by=caller.lower())
        return prev

    @atomic("update_delivery_duration")
    @only_role(Role.MODERATOR)
    @not_denied
    def update_delivery_duration(self, caller: str, seconds: int) -> int:
        prev = self.settings.update_delivery_duration(seconds)
        self.events.emit("DeliveryDurationUpdated", previous=prev, current=seconds, by=caller.lower())
        return prev

    @atomic("update_payment_token")
    @only_role(Role.TREASURER)
    @not_denied
    def update_payment_token(self, caller: str, token: str, accepted: bool) -> bool:
        changed = self.registry.update_payment_token(token, accepted)
        if changed:
            self.events.emit("PaymentTokenUpdated", token=token.lower(), accepted=bool(accepted), by=caller.lower())
        return changed

    @atomic("pause")
    @only_role(Role.MODERATOR)
    @not_denied
    def pause(self, caller: str) -> None:
        self.pause_gate.pause()
        self.events.emit("Paused", by=caller.lower())

    @atomic("unpause")
    @only_role(Role.MODERATOR)
    @not_denied
    def unpause(self, caller: str) -> None:
        self.pause_gate.unpause()
        self.events.emit("Unpaused", by=caller.lower())

    @atomic("rescue_stuck_tokens")
    @only_role(Role.TREASURER)
    @not_denied
    def rescue_stuck_tokens(self, caller: str, token: str) -> int:
        """
        Move the engine's balance of a non-payment token to the treasury.
        Amounts still escrowed for open auctions or deliveries stay put.
        """
        token = normalize_address(token, field="token")
        if self.registry.is_payment_token(token):
            raise ValidationError(Reason.STUCK_TOKEN_ONLY, details={"token": token})
        ledger = self.assets.token(token)
        amount = ledger.balance_of(self.address) - self.escrowed(token)
        if amount > 0:
            TransferPlan(spender=self.address).push(
                ledger, self.treasury.address, amount, memo="rescue", notify=self.treasury
            ).commit()
        self.events.emit("FundsRescued", token=token, amount=max(amount, 0), by=caller.lower())
        log.warning("rescued %d of %s to treasury", max(amount, 0), token)
        return max(amount, 0)

    # ---- ERC-721 receiver --------------------------------------------------

    def on_erc721_received(self, operator: str, from_: str, token_id: int, data: bytes = b"") -> str:
        return ERC721_RECEIVED

    # ---- Lookups -----------------------------------------------------------

    def get_listing(self, collection: str, token_id: int) -> Optional[Listing]:
        return _copy(self.store.get(self._key(collection, token_id)))

    def get_delivery_order(self, collection: str, token_id: int) -> Optional[DeliveryOrder]:
        return _copy(self.store.get_order(self._key(collection, token_id)))

    def listing_history(self, collection: str, token_id: int) -> List[ClosedListing]:
        return self.store.history(self._key(collection, token_id))

    def listings(
        self,
        *,
        seller: Optional[str] = None,
        is_fixed_price: Optional[bool] = None,
        is_phygital: Optional[bool] = None,
        status: Optional[ListingStatus] = None,
    ) -> List[Listing]:
        found = self.store.select(
            seller=seller, is_fixed_price=is_fixed_price, is_phygital=is_phygital, status=status
        )
        return [_copy(l) for l in found]

    def delivery_orders(self) -> List[DeliveryOrder]:
        return [_copy(o) for o in self.store.orders()]

    def escrowed(self, token: str) -> int:
        """Funds of `token` the engine holds for live bids and escrowed deliveries."""
        token = token.lower()
        total = 0
        for listing in self.store:
            if listing.payment_token != token:
                continue
            if listing.status is ListingStatus.LISTED and listing.is_auction and listing.is_sold:
                total += listing.amount
        for order in self.store.orders():
            if order.payment_token == token and order.funds_escrowed and order.is_awaiting:
                total += order.amount
        return total

    def is_payment_token(self, token: str) -> bool:
        return self.registry.is_payment_token(token)

    def payment_tokens(self) -> List[str]:
        return self.registry.payment_tokens()

    @property
    def paused(self) -> bool:
        return self.pause_gate.paused

    @property
    def service_fee_percent(self) -> int:
        return self.settings.service_fee_bps

    @property
    def delivery_duration(self) -> int:
        return self.settings.delivery_duration

    def quote(self, gross: int, fee_bps: Optional[int] = None) -> FeeSplit:
        return split_fee(gross, self.settings.service_fee_bps if fee_bps is None else fee_bps)


__all__ = ["Marketplace"]

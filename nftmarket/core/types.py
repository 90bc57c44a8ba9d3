"""
Core records of the marketplace state machine.

ListingKey
    (collection, token_id); at most one active listing per key.

Listing
    One fixed-price or auction listing. ``buyer`` doubles as the auction's
    current high bidder: it stays the zero address until a sale or first bid,
    and a non-zero value freezes seller-side mutation.

DeliveryOrder
    Exists only for sold phygital listings. Holds the amount and the fee rate
    captured when the sale finalised, and the confirmation deadline.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..chain.address import ZERO_ADDRESS, normalize_address
from ..errors import Reason, ValidationError


class ListingStatus(str, Enum):
    LISTED = "listed"
    AWAITING_DELIVERY = "awaiting_delivery"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class DeliveryState(str, Enum):
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, order=True)
class ListingKey:
    collection: str
    token_id: int

    @classmethod
    def of(cls, collection: str, token_id: int) -> "ListingKey":
        if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 0:
            raise ValidationError(Reason.INVALID_TOKEN_ID, details={"token_id": repr(token_id)})
        return cls(normalize_address(collection, field="collection"), token_id)

    def __str__(self) -> str:
        return f"{self.collection}#{self.token_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {"collection": self.collection, "token_id": self.token_id}


@dataclass
class Listing:
    key: ListingKey
    seller: str
    is_fixed_price: bool
    is_phygital: bool
    start_time: int
    end_time: int
    payment_token: str
    amount: int
    gap: int = 0
    buyer: str = ZERO_ADDRESS
    status: ListingStatus = ListingStatus.LISTED
    created_at: int = 0
    sold_at: Optional[int] = None

    @property
    def bidder(self) -> str:
        return self.buyer

    @property
    def is_sold(self) -> bool:
        return self.buyer != ZERO_ADDRESS

    @property
    def is_auction(self) -> bool:
        return not self.is_fixed_price

    @property
    def is_terminal(self) -> bool:
        return self.status in (ListingStatus.SETTLED, ListingStatus.CANCELLED)

    def is_open(self, now: int) -> bool:
        """True while `now` falls inside the half-open window [start, end)."""
        return self.start_time <= now < self.end_time

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["key"] = self.key.to_dict()
        d["status"] = self.status.value
        return d


@dataclass
class DeliveryOrder:
    key: ListingKey
    seller: str
    buyer: str
    payment_token: str
    amount: int
    funds_escrowed: bool
    fee_bps: int
    opened_at: int
    next_update_deadline: int
    state: DeliveryState = DeliveryState.AWAITING_CONFIRMATION
    closed_at: Optional[int] = None

    @property
    def is_awaiting(self) -> bool:
        return self.state is DeliveryState.AWAITING_CONFIRMATION

    def is_overdue(self, now: int) -> bool:
        return self.is_awaiting and now > self.next_update_deadline

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["key"] = self.key.to_dict()
        d["state"] = self.state.value
        return d


@dataclass(frozen=True)
class ClosedListing:
    """A terminal listing, with its delivery order when it was phygital."""
    listing: Listing
    delivery: Optional[DeliveryOrder] = None
    closed_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listing": self.listing.to_dict(),
            "delivery": self.delivery.to_dict() if self.delivery else None,
            "closed_at": self.closed_at,
        }


__all__ = [
    "ListingStatus",
    "DeliveryState",
    "ListingKey",
    "Listing",
    "DeliveryOrder",
    "ClosedListing",
]

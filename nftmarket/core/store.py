"""
Arena store for listings and delivery orders.

Active listings and open delivery orders live in flat dicts keyed by
`ListingKey`. When a listing reaches a terminal state it is moved, together
with its delivery order, into the per-key history and the key becomes free for
a new listing.

History is append-only: it is journaled by its length, so a checkpoint costs
O(active listings) no matter how many listings have closed.

Minimal in-memory store suitable for devnet/tests; a persistent backend can
implement the same interface later.
"""

from __future__ import annotations

import copy
import dataclasses
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .types import ClosedListing, DeliveryOrder, Listing, ListingKey, ListingStatus


class ListingStore:
    def __init__(self) -> None:
        self._listings: Dict[ListingKey, Listing] = {}
        self._orders: Dict[ListingKey, DeliveryOrder] = {}
        self._history: Dict[ListingKey, List[ClosedListing]] = {}
        self._closed: List[ClosedListing] = []

    # ---- Listings ----------------------------------------------------------

    def get(self, key: ListingKey) -> Optional[Listing]:
        return self._listings.get(key)

    def __contains__(self, key: ListingKey) -> bool:
        return key in self._listings

    def __len__(self) -> int:
        return len(self._listings)

    def __iter__(self) -> Iterator[Listing]:
        return iter(list(self._listings.values()))

    def put_new(self, listing: Listing) -> None:
        if listing.key in self._listings:
            raise KeyError(f"listing already exists for {listing.key}")
        self._listings[listing.key] = listing

    def update(self, listing: Listing) -> None:
        if listing.key not in self._listings:
            raise KeyError(f"no such listing {listing.key}")
        self._listings[listing.key] = listing

    def close(self, key: ListingKey, *, closed_at: int) -> ClosedListing:
        """Move a terminal listing (and its order) into the key's history."""
        listing = self._listings.pop(key)
        if not listing.is_terminal:
            raise ValueError(f"listing {key} is not terminal ({listing.status.value})")
        record = ClosedListing(listing=listing, delivery=self._orders.pop(key, None), closed_at=closed_at)
        self._history.setdefault(key, []).append(record)
        self._closed.append(record)
        return record

    def select(
        self,
        *,
        seller: Optional[str] = None,
        is_fixed_price: Optional[bool] = None,
        is_phygital: Optional[bool] = None,
        status: Optional[ListingStatus] = None,
    ) -> List[Listing]:
        out: Iterable[Listing] = self._listings.values()
        if seller is not None:
            seller = seller.lower()
            out = [l for l in out if l.seller == seller]
        if is_fixed_price is not None:
            out = [l for l in out if l.is_fixed_price == is_fixed_price]
        if is_phygital is not None:
            out = [l for l in out if l.is_phygital == is_phygital]
        if status is not None:
            out = [l for l in out if l.status == status]
        return sorted(out, key=lambda l: l.key)

    # ---- Delivery orders ---------------------------------------------------

    def get_order(self, key: ListingKey) -> Optional[DeliveryOrder]:
        return self._orders.get(key)

    def put_order(self, order: DeliveryOrder) -> None:
        if order.key in self._orders:
            raise KeyError(f"delivery order already exists for {order.key}")
        self._orders[order.key] = order

    def orders(self) -> List[DeliveryOrder]:
        return sorted(self._orders.values(), key=lambda o: o.key)

    # ---- History -----------------------------------------------------------

    def history(self, key: ListingKey) -> List[ClosedListing]:
        """Closed listings for `key`, oldest first; the records are copies."""
        return copy.deepcopy(self._history.get(key, []))

    def closed_count(self) -> int:
        return len(self._closed)

    # ---- Journal -----------------------------------------------------------

    def snapshot(self) -> Tuple[Dict[ListingKey, Listing], Dict[ListingKey, DeliveryOrder], int]:
        return (
            {k: dataclasses.replace(l) for k, l in self._listings.items()},
            {k: dataclasses.replace(o) for k, o in self._orders.items()},
            len(self._closed),
        )

    def restore(self, state) -> None:
        listings, orders, closed = state
        self._listings = {k: dataclasses.replace(l) for k, l in listings.items()}
        self._orders = {k: dataclasses.replace(o) for k, o in orders.items()}
        while len(self._closed) > closed:
            record = self._closed.pop()
            per_key = self._history[record.listing.key]
            per_key.pop()
            if not per_key:
                del self._history[record.listing.key]


__all__ = ["ListingStore"]

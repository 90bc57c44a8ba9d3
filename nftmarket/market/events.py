"""
Engine event log.

Every state transition appends one `Event`. The log is journaled: events
emitted by a call that is later rolled back disappear with it. Committed events
feed the Prometheus counters (see `nftmarket.metrics.record_events`).

Event names
-----------
ListingCreated, ListingUpdated, ListingCancelled, ItemSold, BidPlaced,
BidRefunded, Settled, DeliveryOpened, DeliveryConfirmed, DeliveryCancelled,
PaymentTokenUpdated, ServiceFeeUpdated, DeliveryDurationUpdated, Paused,
Unpaused, FundsRescued
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..chain.clock import Clock


@dataclass(frozen=True)
class Event:
    seq: int
    name: str
    timestamp: int
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.seq, "name": self.name, "timestamp": self.timestamp, "args": dict(self.args)}


class EventLog:
    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._events: List[Event] = []

    def emit(self, name: str, **args: Any) -> Event:
        ev = Event(seq=len(self._events), name=name, timestamp=self._clock.now(), args=args)
        self._events.append(ev)
        return ev

    def __len__(self) -> int:
        return len(self._events)

    def since(self, mark: int) -> List[Event]:
        return self._events[mark:]

    def all(self, name: Optional[str] = None) -> List[Event]:
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.name == name]

    def last(self, name: Optional[str] = None) -> Optional[Event]:
        matching = self.all(name)
        return matching[-1] if matching else None

    # The log is append-only and events are immutable, so the length is a
    # complete checkpoint.
    def snapshot(self) -> int:
        return len(self._events)

    def restore(self, state: int) -> None:
        del self._events[state:]


__all__ = ["Event", "EventLog"]

"""
Trading engine: the listing state machine (`listing`), phygital delivery
escrow (`delivery`), the event log (`events`) and the public facade
(`marketplace`).
"""

from .delivery import DeliveryEscrow
from .events import Event, EventLog
from .listing import ListingEngine
from .marketplace import Marketplace

__all__ = ["DeliveryEscrow", "Event", "EventLog", "ListingEngine", "Marketplace"]

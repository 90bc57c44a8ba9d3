"""
Engine state: the listing/delivery arena store, the payment-token registry,
runtime settings (fee, delivery window) and the pause switch.
"""

from .pause import PauseGate
from .registry import AssetRegistry
from .settings import ConfigSnapshot, ConfigStore
from .store import ListingStore
from .types import ClosedListing, DeliveryOrder, DeliveryState, Listing, ListingKey, ListingStatus

__all__ = [
    "PauseGate",
    "AssetRegistry",
    "ConfigSnapshot",
    "ConfigStore",
    "ListingStore",
    "ClosedListing",
    "DeliveryOrder",
    "DeliveryState",
    "Listing",
    "ListingKey",
    "ListingStatus",
]

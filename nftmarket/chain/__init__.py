"""
Ledger-level primitives shared by the engine and the devnet collaborators:
addresses, the injected clock and the call journal used for all-or-nothing
execution.
"""

from .address import ZERO_ADDRESS, derive_address, is_zero, normalize_address
from .clock import CallClock, Clock, ManualClock, SystemClock
from .journal import Journal, Journaled

__all__ = [
    "ZERO_ADDRESS",
    "derive_address",
    "is_zero",
    "normalize_address",
    "Clock",
    "CallClock",
    "ManualClock",
    "SystemClock",
    "Journal",
    "Journaled",
]

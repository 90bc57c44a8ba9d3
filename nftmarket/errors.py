"""
Error types for the NFT marketplace engine.

Every rejected call raises exactly one MarketError subclass carrying exactly
one `Reason`. Errors are lightweight, serializable and safe to surface over
RPC/logs; the engine never partially applies a rejected call, so callers may
inspect current listing/delivery state and resubmit.

Exports:
- Reason (enum of reason codes)
- MarketError (base)
- AuthorizationError
- StateError
- ValidationError
- PausedError
- AssetError
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Reason(str, Enum):
    """Canonical reason codes reported by rejected calls."""

    # authorization
    FORBIDDEN = "FORBIDDEN"
    ADMIN_ONLY = "ADMIN_ONLY"
    OPERATOR_ONLY = "OPERATOR_ONLY"
    TREASURER_ONLY = "TREASURER_ONLY"
    MODERATOR_ONLY = "MODERATOR_ONLY"
    DENIED = "DENIED"
    NOT_ALLOWED = "NOT_ALLOWED"

    # lifecycle state
    SOLD = "SOLD"
    UNSOLD = "UNSOLD"
    LISTING = "LISTING"
    LISTED = "LISTED"
    UNLISTED = "UNLISTED"
    AUCTION_ACTIVE = "AUCTION_ACTIVE"
    AUCTION_ENDED = "AUCTION_ENDED"
    NOT_STARTED = "NOT_STARTED"
    ENDED = "ENDED"
    OVERDUE = "OVERDUE"
    AUCTION_ITEM = "AUCTION_ITEM"
    NOT_AUCTION = "NOT_AUCTION"
    SETTLED = "SETTLED"

    # parameter validation
    INVALID_END_TIME = "INVALID_END_TIME"
    GAP_ZERO = "GAP_ZERO"
    AMOUNT_TOO_LOW = "AMOUNT_TOO_LOW"
    PAYMENT_UNACCEPTED = "PAYMENT_UNACCEPTED"
    FEE_TOO_HIGH = "FEE_TOO_HIGH"
    EMPTY_ARRAY = "EMPTY_ARRAY"
    STARTED = "STARTED"
    STUCK_TOKEN_ONLY = "STUCK_TOKEN_ONLY"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_DURATION = "INVALID_DURATION"
    UNKNOWN_ASSET = "UNKNOWN_ASSET"
    INVALID_PARAMS = "INVALID_PARAMS"

    # availability
    PAUSED = "PAUSED"
    NOT_PAUSED = "NOT_PAUSED"

    # asset ledgers
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_ALLOWANCE = "INSUFFICIENT_ALLOWANCE"
    NOT_OWNER = "NOT_OWNER"
    NOT_APPROVED = "NOT_APPROVED"
    INVALID_TOKEN_ID = "INVALID_TOKEN_ID"
    RECEIVER_REJECTED = "RECEIVER_REJECTED"


class MarketError(Exception):
    """Base class for marketplace domain errors."""

    code: str = "MARKET_ERROR"

    def __init__(
        self,
        reason: Reason,
        message: str = "",
        *,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.reason = Reason(reason)
        self.message = message or self.reason.value.lower().replace("_", " ")
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "reason": self.reason.value,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            # Keep this compact and stable for logs
            packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            return f"{self.reason.value}: {self.message} [{packed}]"
        return f"{self.reason.value}: {self.message}"


class AuthorizationError(MarketError):
    """Caller lacks a role, is not the seller/buyer, or is deny-listed."""
    code = "MARKET_UNAUTHORIZED"


class StateError(MarketError):
    """Operation attempted from the wrong lifecycle state."""
    code = "MARKET_STATE"


class ValidationError(MarketError):
    """Malformed or unacceptable parameters."""
    code = "MARKET_INVALID"


class PausedError(MarketError):
    """The engine is paused; state-mutating calls are rejected."""
    code = "MARKET_PAUSED"

    def __init__(self, message: str = "paused", *, details: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(Reason.PAUSED, message, details=details)


class AssetError(MarketError):
    """
    Failure reported by a token or collection ledger: insufficient balance or
    allowance, wrong owner, missing approval, rejected receiver, etc.
    """
    code = "MARKET_ASSET"


__all__ = [
    "Reason",
    "MarketError",
    "AuthorizationError",
    "StateError",
    "ValidationError",
    "PausedError",
    "AssetError",
]

"""
Address helpers.

Addresses are `0x`-prefixed, 40-hex-digit strings. They are normalized to
lower case everywhere so they can be used directly as dict keys.
"""

from __future__ import annotations

import hashlib
import re

from ..errors import Reason, ValidationError

ZERO_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(addr: str, *, field: str = "address") -> str:
    """Return the canonical lower-case form of `addr` or raise INVALID_ADDRESS."""
    if not isinstance(addr, str) or not _ADDRESS_RE.match(addr):
        raise ValidationError(
            Reason.INVALID_ADDRESS,
            f"{field} must be a 0x-prefixed 20-byte hex string",
            details={field: str(addr)},
        )
    return addr.lower()


def is_zero(addr: str) -> bool:
    return addr.lower() == ZERO_ADDRESS


def derive_address(tag: str) -> str:
    """Deterministic address from a label (devnet accounts, contract ids)."""
    return "0x" + hashlib.sha3_256(tag.encode("utf-8")).hexdigest()[:40]


__all__ = ["ZERO_ADDRESS", "normalize_address", "is_zero", "derive_address"]

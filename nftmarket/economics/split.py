"""
Fee split: divide a sale's gross amount between the treasury and the seller.

The service fee is expressed in basis points out of ``PERCENTAGE`` (10_000 =
100%). The fee rounds down; the seller receives the remainder, so
``fee + proceeds == gross`` holds exactly for every rate in ``0..PERCENTAGE``.

Example
-------
>>> split_fee(50_000_000, 125)
FeeSplit(gross=50000000, fee_bps=125, fee=625000, proceeds=49375000)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Final

from ..errors import Reason, ValidationError

PERCENTAGE: Final[int] = 10_000
DEFAULT_SERVICE_FEE_BPS: Final[int] = 125


@dataclass(frozen=True)
class FeeSplit:
    gross: int
    fee_bps: int
    fee: int
    proceeds: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_fee_bps(fee_bps: int) -> int:
    if isinstance(fee_bps, bool) or not isinstance(fee_bps, int) or fee_bps < 0:
        raise ValidationError(Reason.INVALID_AMOUNT, "fee must be a non-negative integer", details={"fee_bps": fee_bps})
    if fee_bps > PERCENTAGE:
        raise ValidationError(Reason.FEE_TOO_HIGH, details={"fee_bps": fee_bps, "max": PERCENTAGE})
    return fee_bps


def split_fee(gross: int, fee_bps: int) -> FeeSplit:
    """Integer fee split; the fee rounds down and the seller keeps the residue."""
    if isinstance(gross, bool) or not isinstance(gross, int) or gross < 0:
        raise ValidationError(Reason.INVALID_AMOUNT, "gross must be a non-negative integer", details={"gross": gross})
    validate_fee_bps(fee_bps)
    fee = (gross * fee_bps) // PERCENTAGE
    return FeeSplit(gross=gross, fee_bps=fee_bps, fee=fee, proceeds=gross - fee)


__all__ = ["PERCENTAGE", "DEFAULT_SERVICE_FEE_BPS", "FeeSplit", "validate_fee_bps", "split_fee"]

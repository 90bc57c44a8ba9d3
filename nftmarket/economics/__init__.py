"""
Sale economics: the basis-point fee split (`split`), two-phase token movements
(`transfers`) and settlement of concluded sales (`settlement`).
"""

from .split import DEFAULT_SERVICE_FEE_BPS, PERCENTAGE, FeeSplit, split_fee, validate_fee_bps

__all__ = ["DEFAULT_SERVICE_FEE_BPS", "PERCENTAGE", "FeeSplit", "split_fee", "validate_fee_bps"]

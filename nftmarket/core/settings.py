"""
Runtime settings: service fee and phygital delivery window.

The engine reads a `ConfigSnapshot` at the moment a sale finalises and keeps
the values it needs (fee rate, deadline) on the delivery order, so later
changes never apply retroactively.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..economics.split import DEFAULT_SERVICE_FEE_BPS, PERCENTAGE, validate_fee_bps
from ..errors import Reason, ValidationError

if TYPE_CHECKING:
    from ..config import MarketConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigSnapshot:
    service_fee_bps: int
    delivery_duration: int
    percentage: int = PERCENTAGE


class ConfigStore:
    def __init__(self, service_fee_bps: int = DEFAULT_SERVICE_FEE_BPS, delivery_duration: int = 30 * 24 * 3600) -> None:
        self._fee_bps = validate_fee_bps(service_fee_bps)
        self._duration = self._check_duration(delivery_duration)

    @classmethod
    def from_config(cls, cfg: MarketConfig) -> "ConfigStore":
        return cls(service_fee_bps=cfg.fees.service_fee_bps, delivery_duration=cfg.delivery.duration_seconds)

    @staticmethod
    def _check_duration(seconds: int) -> int:
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 0:
            raise ValidationError(Reason.INVALID_DURATION, details={"delivery_duration": seconds})
        return seconds

    @property
    def service_fee_bps(self) -> int:
        return self._fee_bps

    @property
    def delivery_duration(self) -> int:
        return self._duration

    def snapshot_values(self) -> ConfigSnapshot:
        return ConfigSnapshot(service_fee_bps=self._fee_bps, delivery_duration=self._duration)

    def update_service_fee_percent(self, bps: int) -> int:
        """Set the fee; returns the previous value."""
        prev, self._fee_bps = self._fee_bps, validate_fee_bps(bps)
        log.info("service fee updated %d -> %d bps", prev, bps)
        return prev

    def update_delivery_duration(self, seconds: int) -> int:
        prev, self._duration = self._duration, self._check_duration(seconds)
        log.info("delivery duration updated %d -> %d s", prev, seconds)
        return prev

    # ---- Journal -----------------------------------------------------------

    def snapshot(self):
        return (self._fee_bps, self._duration)

    def restore(self, state) -> None:
        self._fee_bps, self._duration = state


__all__ = ["ConfigSnapshot", "ConfigStore"]

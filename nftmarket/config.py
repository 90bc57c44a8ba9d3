"""
nftmarket.config — configuration for the marketplace engine

Covers:
- Service fee (basis points, 10_000 = 100%) remitted to the treasury
- Phygital delivery confirmation window (seconds)
- Payment tokens accepted at startup
- Optional chain id (informational)

Environment overrides (all optional; sensible defaults provided):

  NFTMARKET_SERVICE_FEE_BPS=125
  NFTMARKET_DELIVERY_DURATION_SECONDS=2592000
  NFTMARKET_PAYMENT_TOKENS=0xabc...,0xdef...
  NFTMARKET_CHAIN_ID=1337

You can also load from a JSON or YAML file via
`NFTMARKET_CONFIG_FILE=/path/to/config.(json|yaml|yml)`:

  fees:
    service_fee_bps: 250
  delivery:
    duration_seconds: 1209600
  payment_tokens: ["0x..."]

File values override defaults; environment overrides the file.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .chain.address import normalize_address
from .economics.split import DEFAULT_SERVICE_FEE_BPS, PERCENTAGE
from .errors import ValidationError

DEFAULT_DELIVERY_DURATION_SECONDS = 30 * 24 * 60 * 60


# -------------------------- Data classes --------------------------


@dataclass
class FeeConfig:
    """Service fee in basis points of the gross sale amount."""
    service_fee_bps: int = DEFAULT_SERVICE_FEE_BPS   # 1.25%

    def validate(self) -> None:
        if not (0 <= self.service_fee_bps <= PERCENTAGE):
            raise ValueError(f"service_fee_bps must be between 0 and {PERCENTAGE} (got {self.service_fee_bps}).")


@dataclass
class DeliveryConfig:
    """Window the buyer has to confirm receipt of a phygital item."""
    duration_seconds: int = DEFAULT_DELIVERY_DURATION_SECONDS   # 30 days

    def validate(self) -> None:
        if self.duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative.")


@dataclass
class MarketConfig:
    """Top-level configuration container."""
    fees: FeeConfig = field(default_factory=FeeConfig)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    payment_tokens: List[str] = field(default_factory=list)
    chain_id: Optional[int] = None

    def validate(self) -> None:
        self.fees.validate()
        self.delivery.validate()
        for t in self.payment_tokens:
            try:
                normalize_address(t, field="payment_token")
            except ValidationError as e:
                raise ValueError(f"invalid payment token address {t!r}") from e

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def _getenv_list(name: str, default: List[str]) -> List[str]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return list(default)
    return [item.strip().lower() for item in v.split(",") if item.strip()]


def from_env(base: Optional[MarketConfig] = None, prefix: str = "NFTMARKET_") -> MarketConfig:
    """
    Build a MarketConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or MarketConfig()

    fee = _getenv_int(f"{prefix}SERVICE_FEE_BPS", cfg.fees.service_fee_bps)
    duration = _getenv_int(f"{prefix}DELIVERY_DURATION_SECONDS", cfg.delivery.duration_seconds)
    tokens = _getenv_list(f"{prefix}PAYMENT_TOKENS", cfg.payment_tokens)

    chain_id = os.getenv(f"{prefix}CHAIN_ID")
    chain_id_val = int(chain_id) if chain_id not in (None, "") else cfg.chain_id

    new_cfg = MarketConfig(
        fees=FeeConfig(service_fee_bps=fee),
        delivery=DeliveryConfig(duration_seconds=duration),
        payment_tokens=tokens,
        chain_id=chain_id_val,
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> MarketConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")

    fees = data.get("fees", {})
    delivery = data.get("delivery", {})

    cfg = MarketConfig(
        fees=FeeConfig(service_fee_bps=int(fees.get("service_fee_bps", FeeConfig().service_fee_bps))),
        delivery=DeliveryConfig(
            duration_seconds=int(delivery.get("duration_seconds", DeliveryConfig().duration_seconds)),
        ),
        payment_tokens=[str(t).lower() for t in data.get("payment_tokens", [])],
        chain_id=data.get("chain_id", MarketConfig().chain_id),
    )
    cfg.validate()
    return cfg


def load() -> MarketConfig:
    """
    Load configuration using the following precedence:
      1) File at $NFTMARKET_CONFIG_FILE (JSON/YAML)
      2) Environment variables (NFTMARKET_*), applied on top of defaults or file values
    """
    file_path = os.getenv("NFTMARKET_CONFIG_FILE")
    base = from_file(file_path) if file_path else MarketConfig()
    return from_env(base=base)


# -------------------------- Utilities --------------------------


def pretty(cfg: Optional[MarketConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "DEFAULT_DELIVERY_DURATION_SECONDS",
    "FeeConfig",
    "DeliveryConfig",
    "MarketConfig",
    "from_env",
    "from_file",
    "load",
    "pretty",
]

"""
nftmarket — peer-to-peer NFT marketplace engine.

Fixed-price listings, English auctions with push-style outbid refunds, instant
buy-now and a *phygital* mode where settlement waits until the buyer confirms
receipt of the physical good. Settlement splits every sale between the seller
and the treasury using a basis-point service fee.

Public surface (lazily loaded):
- config, errors, metrics
- access, assets, chain, core, economics, market
- rpc, cli, devnet
"""

from __future__ import annotations

import importlib
from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    "config",
    "errors",
    "metrics",
    "access",
    "assets",
    "chain",
    "core",
    "economics",
    "market",
    "rpc",
    "cli",
    "devnet",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------

_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the nftmarket package version string."""
    return __version__

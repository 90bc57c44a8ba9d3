"""
Shared fixtures: a freshly wired devnet per test plus small helpers to fund
accounts and put items up for sale.

All amounts use 18-decimal base units; the default price mirrors a
50,000,000-unit listing and the default window opens one minute after the
devnet clock and lasts one day.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import pytest

from nftmarket.devnet import Devnet, build_devnet

from .helpers import DAY, GAP, PRICE


@dataclass
class Listed:
    token_id: int
    start: int
    end: int

    def open(self, dev: Devnet) -> None:
        dev.clock.set(self.start)

    def close(self, dev: Devnet) -> None:
        dev.clock.set(self.end)


@pytest.fixture
def dev() -> Devnet:
    return build_devnet()


@pytest.fixture
def seller(dev: Devnet) -> str:
    return dev.account("seller")


@pytest.fixture
def buyer(dev: Devnet) -> str:
    return dev.fund("buyer", 2 * PRICE)


@pytest.fixture
def bidder_a(dev: Devnet) -> str:
    return dev.fund("bidder_a", 2 * PRICE)


@pytest.fixture
def bidder_b(dev: Devnet) -> str:
    return dev.fund("bidder_b", 2 * PRICE)


@pytest.fixture
def stranger(dev: Devnet) -> str:
    return dev.account("stranger")


@pytest.fixture
def list_item(dev: Devnet, seller: str) -> Callable[..., Listed]:
    """Mint an NFT to the seller and list it; returns the token id and window."""

    def _list(
        *,
        fixed: bool = True,
        phygital: bool = False,
        amount: int = PRICE,
        gap: Optional[int] = None,
        start_in: int = 60,
        duration: int = DAY,
    ) -> Listed:
        tid = dev.mint_nft("seller")
        start = dev.clock.now() + start_in
        end = start + duration
        dev.market.create_listing(
            seller,
            dev.collection.address,
            tid,
            fixed,
            phygital,
            start,
            end,
            dev.token.address,
            amount,
            (0 if fixed else GAP) if gap is None else gap,
        )
        return Listed(token_id=tid, start=start, end=end)

    return _list

"""
In-memory devnet: a fully wired marketplace with deterministic accounts.

Used by the CLI demos, the RPC app factory and the test-suite.

    dev = build_devnet()
    dev.fund("buyer", 100 * UNIT)
    token_id = dev.mint_nft("seller")
    dev.market.create_listing(dev.account("seller"), dev.collection.address, token_id, ...)

The deploying ``owner`` account holds every role. The marketplace is
registered as a default operator of the devnet collection so it can reclaim
phygital items on delivery cancellation.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from .access.gate import ControlCenter
from .assets.directory import AssetDirectory
from .assets.erc20 import MAX_UINT256, PaymentToken
from .assets.erc721 import Collection
from .assets.treasury import Treasury
from .chain.address import derive_address
from .chain.clock import Clock, ManualClock
from .config import MarketConfig
from .market.marketplace import Marketplace

log = logging.getLogger(__name__)

DEFAULT_START_TIME = 1_700_000_000
DEFAULT_ACCOUNTS = ("owner", "seller", "buyer", "bidder_a", "bidder_b", "stranger")

# 18-decimals base unit, as for the devnet payment token.
UNIT = 10 ** 18


def devnet_address(label: str) -> str:
    return derive_address(f"nftmarket/devnet/{label}")


@dataclass
class Devnet:
    clock: Clock
    gate: ControlCenter
    assets: AssetDirectory
    token: PaymentToken
    collection: Collection
    treasury: Treasury
    market: Marketplace
    accounts: Dict[str, str] = field(default_factory=dict)

    @property
    def owner(self) -> str:
        return self.accounts["owner"]

    def account(self, name: str) -> str:
        if name not in self.accounts:
            self.accounts[name] = devnet_address(name)
        return self.accounts[name]

    def fund(self, name: str, amount: int, *, approve: bool = True) -> str:
        """Allow-list `name`, mint `amount` to it and approve the marketplace."""
        addr = self.account(name)
        if not self.gate.is_allowed(addr):
            self.gate.add_to_allow_list(self.owner, addr)
        self.token.mint(self.owner, addr, amount)
        if approve:
            self.token.approve(addr, self.market.address, MAX_UINT256)
        return addr

    def mint_nft(self, name: str, token_id: Optional[int] = None, *, approve: bool = True) -> int:
        """Mint an NFT to `name`; optionally approve the marketplace for all its tokens."""
        addr = self.account(name)
        tid = self.collection.mint(self.owner, addr, token_id)
        if approve:
            self.collection.set_approval_for_all(addr, self.market.address, True)
        return tid

    def balance(self, name: str) -> int:
        return self.token.balance_of(self.account(name))

    def balances(self, names: Optional[Iterable[str]] = None) -> Dict[str, int]:
        out = {n: self.balance(n) for n in (names or self.accounts)}
        out["treasury"] = self.token.balance_of(self.treasury.address)
        out["marketplace"] = self.token.balance_of(self.market.address)
        return out


def build_devnet(
    *,
    config: Optional[MarketConfig] = None,
    start_time: int = DEFAULT_START_TIME,
    accounts: Iterable[str] = DEFAULT_ACCOUNTS,
    clock: Optional[Clock] = None,
) -> Devnet:
    addrs = {name: devnet_address(name) for name in accounts}
    addrs.setdefault("owner", devnet_address("owner"))
    owner = addrs["owner"]

    clock = clock or ManualClock(start_time)
    gate = ControlCenter(owner)
    assets = AssetDirectory()
    token = assets.register_token(PaymentToken(devnet_address("token/VND"), "Vietnamese Dong", "VND", gate=gate))
    collection = assets.register_collection(
        Collection(devnet_address("collection/PHY"), "Phygital Collection", "PHY", owner, directory=assets)
    )
    treasury = Treasury(devnet_address("treasury"), gate)
    assets.register_contract(treasury.address, treasury)

    cfg = config or MarketConfig()
    if token.address not in [t.lower() for t in cfg.payment_tokens]:
        cfg = dataclasses.replace(cfg, payment_tokens=[*cfg.payment_tokens, token.address])
    market = Marketplace(
        address=devnet_address("marketplace"),
        gate=gate,
        assets=assets,
        treasury=treasury,
        clock=clock,
        config=cfg,
    )
    collection.set_default_operator(owner, market.address, True)
    log.debug("devnet built market=%s token=%s collection=%s", market.address, token.address, collection.address)
    return Devnet(
        clock=clock,
        gate=gate,
        assets=assets,
        token=token,
        collection=collection,
        treasury=treasury,
        market=market,
        accounts=addrs,
    )


__all__ = ["UNIT", "DEFAULT_START_TIME", "DEFAULT_ACCOUNTS", "Devnet", "devnet_address", "build_devnet"]

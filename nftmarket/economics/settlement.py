"""
Settlement: conclude a sale by splitting the gross amount between the
treasury (service fee) and the seller.

Funds come either from engine custody (escrowed auction bids) or straight from
the payer's allowance (fixed-price purchases and phygital buy-now confirmed on
delivery). Both legs are staged in one `TransferPlan`, so a settlement moves
either both amounts or nothing.

A listing is settled at most once: settling a listing that is already settled
or cancelled raises ``SETTLED``. The listing's status is flipped to SETTLED in
the same call.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from ..assets.directory import AssetDirectory
from ..assets.interfaces import FundsReceiver
from ..core.types import Listing, ListingStatus
from ..errors import Reason, StateError
from .split import FeeSplit, split_fee
from .transfers import TransferPlan

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementReceipt:
    collection: str
    token_id: int
    payment_token: str
    seller: str
    payer: str
    treasury: str
    gross: int
    fee_bps: int
    fee: int
    proceeds: int
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SettlementEngine:
    def __init__(self, *, engine_address: str, assets: AssetDirectory, treasury: FundsReceiver, events) -> None:
        self.engine_address = engine_address.lower()
        self.assets = assets
        self.treasury = treasury
        self.events = events

    @staticmethod
    def quote(gross: int, fee_bps: int) -> FeeSplit:
        return split_fee(gross, fee_bps)

    def settle(
        self,
        listing: Listing,
        gross: int,
        *,
        fee_bps: int,
        payer: Optional[str] = None,
        source: str = "immediate",
    ) -> SettlementReceipt:
        """
        Pay `gross` out under the fee split.

        payer=None settles from engine custody; otherwise both legs are pulled
        from `payer` using its allowance to the engine.
        """
        if listing.is_terminal:
            raise StateError(Reason.SETTLED, details={"listing": str(listing.key), "status": listing.status.value})

        split = self.quote(gross, fee_bps)
        token = self.assets.token(listing.payment_token)
        plan = TransferPlan(spender=self.engine_address)
        memo = f"fee:{listing.key}"
        if payer is None:
            plan.push(token, self.treasury.address, split.fee, memo=memo, notify=self.treasury)
            plan.push(token, listing.seller, split.proceeds, memo=f"proceeds:{listing.key}")
        else:
            plan.pull(token, payer, self.treasury.address, split.fee, memo=memo, notify=self.treasury)
            plan.pull(token, payer, listing.seller, split.proceeds, memo=f"proceeds:{listing.key}")
        plan.commit()

        listing.status = ListingStatus.SETTLED
        receipt = SettlementReceipt(
            collection=listing.key.collection,
            token_id=listing.key.token_id,
            payment_token=token.address,
            seller=listing.seller,
            payer=(payer or self.engine_address).lower(),
            treasury=self.treasury.address,
            gross=split.gross,
            fee_bps=split.fee_bps,
            fee=split.fee,
            proceeds=split.proceeds,
            source=source,
        )
        self.events.emit("Settled", **receipt.to_dict())
        log.info(
            "settled %s gross=%d fee=%d proceeds=%d source=%s",
            listing.key, split.gross, split.fee, split.proceeds, source,
        )
        return receipt


__all__ = ["SettlementReceipt", "SettlementEngine"]

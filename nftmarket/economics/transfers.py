"""
Two-phase token movements.

A `TransferPlan` stages every leg of a fund movement (pull from a payer, push
out of engine custody), checks the whole plan against current balances and
allowances, and only then commits the legs in order. A plan that cannot
complete in full raises before any leg is applied.

Typical flow
------------
1) plan = TransferPlan(spender=engine_address)
2) plan.pull(token, bidder, engine_address, amount, memo="bid")
   plan.push(token, previous_bidder, previous_amount, memo="refund")
3) plan.commit()      -> preflight, then execute every leg

Design notes
------------
- Preflight simulates the legs sequentially, so a leg may spend funds that an
  earlier leg of the same plan delivered.
- Zero-amount legs are dropped.
- Commit runs inside the caller's journal transaction; if a ledger still
  rejects a leg, the journal restores the legs already applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..assets.erc20 import MAX_UINT256
from ..assets.interfaces import FundsReceiver, TokenLedger
from ..errors import AssetError, Reason

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferLeg:
    token: TokenLedger
    source: str
    to: str
    amount: int
    pull: bool
    memo: str = ""
    notify: Optional[FundsReceiver] = None

    def describe(self) -> Dict[str, object]:
        return {
            "token": self.token.address,
            "from": self.source,
            "to": self.to,
            "amount": self.amount,
            "kind": "pull" if self.pull else "push",
            "memo": self.memo,
        }


class TransferPlan:
    def __init__(self, spender: str) -> None:
        self.spender = spender.lower()
        self._legs: List[TransferLeg] = []
        self._committed = False

    @property
    def legs(self) -> Tuple[TransferLeg, ...]:
        return tuple(self._legs)

    def pull(
        self,
        token: TokenLedger,
        owner: str,
        to: str,
        amount: int,
        *,
        memo: str = "",
        notify: Optional[FundsReceiver] = None,
    ) -> "TransferPlan":
        """Stage `transfer_from(spender, owner, to, amount)`."""
        if amount:
            self._legs.append(TransferLeg(token, owner.lower(), to.lower(), amount, True, memo, notify))
        return self

    def push(
        self,
        token: TokenLedger,
        to: str,
        amount: int,
        *,
        memo: str = "",
        notify: Optional[FundsReceiver] = None,
    ) -> "TransferPlan":
        """Stage `transfer(spender, to, amount)` out of engine custody."""
        if amount:
            self._legs.append(TransferLeg(token, self.spender, to.lower(), amount, False, memo, notify))
        return self

    def preflight(self) -> None:
        """Raise if any leg would fail given current balances and allowances."""
        balances: Dict[Tuple[str, str], int] = {}
        allowances: Dict[Tuple[str, str], int] = {}
        for leg in self._legs:
            tk = leg.token.address
            src = (tk, leg.source)
            if src not in balances:
                balances[src] = leg.token.balance_of(leg.source)
            if leg.pull:
                if src not in allowances:
                    allowances[src] = leg.token.allowance(leg.source, self.spender)
                if allowances[src] < leg.amount:
                    raise AssetError(Reason.INSUFFICIENT_ALLOWANCE, details=leg.describe())
                if allowances[src] != MAX_UINT256:
                    allowances[src] -= leg.amount
            if balances[src] < leg.amount:
                raise AssetError(Reason.INSUFFICIENT_BALANCE, details=leg.describe())
            balances[src] -= leg.amount
            dst = (tk, leg.to)
            balances[dst] = balances.get(dst, leg.token.balance_of(leg.to)) + leg.amount

    def commit(self) -> int:
        """Preflight then apply every leg; returns the number of legs applied."""
        if self._committed:
            raise RuntimeError("transfer plan already committed")
        self.preflight()
        for leg in self._legs:
            if leg.pull:
                leg.token.transfer_from(self.spender, leg.source, leg.to, leg.amount)
            else:
                leg.token.transfer(self.spender, leg.to, leg.amount)
            if leg.notify is not None:
                leg.notify.receive_funds(leg.token.address, leg.source, leg.amount, leg.memo)
            log.debug("transfer leg applied %s", leg.describe())
        self._committed = True
        return len(self._legs)


__all__ = ["TransferLeg", "TransferPlan"]

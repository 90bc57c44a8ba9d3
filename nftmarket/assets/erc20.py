"""
nftmarket.assets.erc20
======================

In-memory ERC-20-shaped payment token for devnets and tests.

API surface
-----------
- Queries: ``balance_of``, ``allowance``, ``total_supply``
- Mutations: ``transfer``, ``transfer_from``, ``approve``,
  ``increase_allowance``, ``decrease_allowance``
- Supply (gated by the access gate):
    - ``mint(caller, to, amount)``: treasurer only; recipient must be on the
      allow-list (``NOT_ALLOWED``).
    - ``burn(caller, account, amount)``: treasurer only; the burned account
      must not be deny-listed (``DENIED``).

Notes
-----
- Amounts are non-negative integers in base units.
- An allowance of ``MAX_UINT256`` is treated as unlimited and never decremented.
- ``Transfer`` / ``Approval`` records are appended to ``log``; the whole
  ledger (balances, allowances, supply, log) is journaled.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..access.gate import AccessGate, Role, role_reason
from ..chain.address import ZERO_ADDRESS, normalize_address
from ..errors import AssetError, AuthorizationError, Reason, ValidationError

log = logging.getLogger(__name__)

MAX_UINT256 = (1 << 256) - 1


def _check_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0 or amount > MAX_UINT256:
        raise ValidationError(Reason.INVALID_AMOUNT, details={"amount": str(amount)})
    return amount


class PaymentToken:
    def __init__(
        self,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        *,
        gate: Optional[AccessGate] = None,
    ) -> None:
        self.address = normalize_address(address, field="token")
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.gate = gate
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._supply = 0
        self.log: List[Dict[str, Any]] = []

    def __repr__(self) -> str:
        return f"PaymentToken({self.symbol}@{self.address})"

    # ---- Queries -----------------------------------------------------------

    def balance_of(self, account: str) -> int:
        return self._balances.get(account.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner.lower(), spender.lower()), 0)

    def total_supply(self) -> int:
        return self._supply

    # ---- Transfers ---------------------------------------------------------

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._move(sender.lower(), normalize_address(to, field="to"), _check_amount(amount))
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        amount = _check_amount(amount)
        owner, spender = owner.lower(), spender.lower()
        to = normalize_address(to, field="to")
        current = self.allowance(owner, spender)
        if current < amount:
            raise AssetError(
                Reason.INSUFFICIENT_ALLOWANCE,
                details={"token": self.address, "owner": owner, "spender": spender,
                         "allowance": current, "amount": amount},
            )
        self._move(owner, to, amount)
        if current != MAX_UINT256:
            self._allowances[(owner, spender)] = current - amount
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        amount = _check_amount(amount)
        owner = owner.lower()
        spender = normalize_address(spender, field="spender")
        self._allowances[(owner, spender)] = amount
        self.log.append({"event": "Approval", "owner": owner, "spender": spender, "amount": amount})
        return True

    def increase_allowance(self, owner: str, spender: str, added: int) -> bool:
        new = min(self.allowance(owner, spender) + _check_amount(added), MAX_UINT256)
        return self.approve(owner, spender, new)

    def decrease_allowance(self, owner: str, spender: str, subtracted: int) -> bool:
        current = self.allowance(owner, spender)
        if current < _check_amount(subtracted):
            raise AssetError(Reason.INSUFFICIENT_ALLOWANCE, details={"allowance": current, "amount": subtracted})
        return self.approve(owner, spender, current - subtracted)

    def _move(self, src: str, dst: str, amount: int) -> None:
        bal = self.balance_of(src)
        if bal < amount:
            raise AssetError(
                Reason.INSUFFICIENT_BALANCE,
                details={"token": self.address, "account": src, "balance": bal, "amount": amount},
            )
        self._balances[src] = bal - amount
        self._balances[dst] = self.balance_of(dst) + amount
        self.log.append({"event": "Transfer", "from": src, "to": dst, "amount": amount})

    # ---- Supply ------------------------------------------------------------

    def _require_treasurer(self, caller: str) -> None:
        if self.gate is None or not self.gate.has_role(Role.TREASURER, caller):
            raise AuthorizationError(role_reason(Role.TREASURER), details={"caller": caller})

    def mint(self, caller: str, to: str, amount: int) -> None:
        self._require_treasurer(caller)
        to = normalize_address(to, field="to")
        if not self.gate.is_allowed(to):
            raise AuthorizationError(Reason.NOT_ALLOWED, details={"account": to})
        amount = _check_amount(amount)
        self._balances[to] = self.balance_of(to) + amount
        self._supply += amount
        self.log.append({"event": "Transfer", "from": ZERO_ADDRESS, "to": to, "amount": amount})
        log.info("%s minted %d to %s", self.symbol, amount, to)

    def burn(self, caller: str, account: str, amount: int) -> None:
        self._require_treasurer(caller)
        account = account.lower()
        if self.gate.is_denied(account):
            raise AuthorizationError(Reason.DENIED, details={"account": account})
        amount = _check_amount(amount)
        bal = self.balance_of(account)
        if bal < amount:
            raise AssetError(Reason.INSUFFICIENT_BALANCE, details={"account": account, "balance": bal, "amount": amount})
        self._balances[account] = bal - amount
        self._supply -= amount
        self.log.append({"event": "Transfer", "from": account, "to": ZERO_ADDRESS, "amount": amount})
        log.info("%s burned %d from %s", self.symbol, amount, account)

    # ---- Journal -----------------------------------------------------------

    def snapshot(self):
        # The log is append-only; it is journaled by its length.
        return (dict(self._balances), dict(self._allowances), self._supply, len(self.log))

    def restore(self, state) -> None:
        balances, allowances, self._supply, mark = state
        self._balances, self._allowances = dict(balances), dict(allowances)
        del self.log[mark:]


__all__ = ["PaymentToken", "MAX_UINT256"]

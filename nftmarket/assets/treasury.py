"""
Treasury sink: the account service fees are remitted to.

The engine transfers fee tokens to ``Treasury.address`` and then calls
``receive_funds`` so the treasury can keep per-token accounting. Withdrawals
are treasurer-only, as is every outgoing movement from the original treasury
contract.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..access.gate import AccessGate, Role, role_reason
from ..chain.address import normalize_address
from ..errors import AuthorizationError, Reason, ValidationError
from .erc721 import ERC721_RECEIVED
from .interfaces import TokenLedger

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Remittance:
    token: str
    source: str
    amount: int
    memo: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Treasury:
    def __init__(self, address: str, gate: Optional[AccessGate] = None) -> None:
        self.address = normalize_address(address, field="treasury")
        self.gate = gate
        self._received: Dict[str, int] = {}
        self._remittances: List[Remittance] = []

    def receive_funds(self, token: str, source: str, amount: int, memo: str = "") -> None:
        if amount < 0:
            raise ValidationError(Reason.INVALID_AMOUNT, details={"amount": amount})
        token = token.lower()
        self._received[token] = self._received.get(token, 0) + amount
        self._remittances.append(Remittance(token=token, source=source.lower(), amount=amount, memo=memo))
        log.debug("treasury received %d of %s from %s (%s)", amount, token, source, memo)

    def total_received(self, token: str) -> int:
        return self._received.get(token.lower(), 0)

    def remittances(self, token: Optional[str] = None) -> List[Remittance]:
        if token is None:
            return list(self._remittances)
        token = token.lower()
        return [r for r in self._remittances if r.token == token]

    def withdraw(self, caller: str, token: TokenLedger, to: str, amount: int) -> None:
        if self.gate is None or not self.gate.has_role(Role.TREASURER, caller):
            raise AuthorizationError(role_reason(Role.TREASURER), details={"caller": caller})
        token.transfer(self.address, to, amount)
        log.info("treasury withdrew %d of %s to %s", amount, token.address, to)

    def on_erc721_received(self, operator: str, from_: str, token_id: int, data: bytes = b"") -> str:
        return ERC721_RECEIVED

    def snapshot(self):
        return dict(self._received), len(self._remittances)

    def restore(self, state) -> None:
        received, mark = state
        self._received = dict(received)
        del self._remittances[mark:]


__all__ = ["Treasury", "Remittance"]

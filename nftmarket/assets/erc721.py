"""
nftmarket.assets.erc721
=======================

In-memory ERC-721-shaped collection for devnets and tests.

Design notes
------------
- Token ids are non-negative integers minted sequentially from 0 unless an
  explicit id is requested.
- An operator may move a token when it is the owner, the approved address for
  that token, an approved-for-all operator of the owner, or one of the
  collection's *default operators*. Default operators are marketplaces the
  collection creator trusts collection-wide (the pre-approved proxy pattern);
  the marketplace relies on this to reclaim a phygital item from the buyer
  when a delivery is cancelled.
- ``safe_transfer_from`` resolves the recipient through the asset directory:
  when the recipient is a registered contract it must implement
  ``on_erc721_received`` and return ``ERC721_RECEIVED``, otherwise the
  transfer fails with ``RECEIVER_REJECTED``.
- Any transfer clears the single-token approval.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

from ..chain.address import ZERO_ADDRESS, normalize_address
from ..errors import AssetError, Reason

if TYPE_CHECKING:
    from .directory import AssetDirectory

log = logging.getLogger(__name__)

# bytes4(keccak256("onERC721Received(address,address,uint256,bytes)"))
ERC721_RECEIVED = "0x150b7a02"


class Collection:
    def __init__(
        self,
        address: str,
        name: str,
        symbol: str,
        owner: str,
        *,
        directory: Optional["AssetDirectory"] = None,
    ) -> None:
        self.address = normalize_address(address, field="collection")
        self.name = name
        self.symbol = symbol
        self.owner = normalize_address(owner, field="owner")
        self.directory = directory
        self._owners: Dict[int, str] = {}
        self._token_approvals: Dict[int, str] = {}
        self._operator_approvals: Set[Tuple[str, str]] = set()
        self._default_operators: Set[str] = set()
        self._next_id = 0
        self.log: List[Dict[str, Any]] = []

    def __repr__(self) -> str:
        return f"Collection({self.symbol}@{self.address})"

    # ---- Queries -----------------------------------------------------------

    def owner_of(self, token_id: int) -> str:
        try:
            return self._owners[token_id]
        except KeyError:
            raise AssetError(
                Reason.INVALID_TOKEN_ID, details={"collection": self.address, "token_id": token_id}
            ) from None

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def balance_of(self, account: str) -> int:
        account = account.lower()
        return sum(1 for o in self._owners.values() if o == account)

    def tokens_of(self, account: str) -> List[int]:
        account = account.lower()
        return sorted(t for t, o in self._owners.items() if o == account)

    def get_approved(self, token_id: int) -> str:
        self.owner_of(token_id)
        return self._token_approvals.get(token_id, ZERO_ADDRESS)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return (owner.lower(), operator.lower()) in self._operator_approvals

    def default_operators(self) -> List[str]:
        return sorted(self._default_operators)

    def is_default_operator(self, operator: str) -> bool:
        return operator.lower() in self._default_operators

    def _is_approved_or_owner(self, operator: str, token_id: int) -> bool:
        owner = self.owner_of(token_id)
        operator = operator.lower()
        return (
            operator == owner
            or self._token_approvals.get(token_id) == operator
            or (owner, operator) in self._operator_approvals
            or operator in self._default_operators
        )

    # ---- Approvals ---------------------------------------------------------

    def approve(self, caller: str, to: str, token_id: int) -> None:
        owner = self.owner_of(token_id)
        caller = caller.lower()
        if caller != owner and (owner, caller) not in self._operator_approvals:
            raise AssetError(Reason.NOT_APPROVED, details={"caller": caller, "token_id": token_id})
        to = normalize_address(to, field="to")
        self._token_approvals[token_id] = to
        self.log.append({"event": "Approval", "owner": owner, "approved": to, "token_id": token_id})

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        pair = (owner.lower(), normalize_address(operator, field="operator"))
        if approved:
            self._operator_approvals.add(pair)
        else:
            self._operator_approvals.discard(pair)
        self.log.append({"event": "ApprovalForAll", "owner": pair[0], "operator": pair[1], "approved": approved})

    def set_default_operator(self, caller: str, operator: str, enabled: bool) -> None:
        if caller.lower() != self.owner:
            raise AssetError(Reason.NOT_OWNER, details={"caller": caller, "collection": self.address})
        operator = normalize_address(operator, field="operator")
        if enabled:
            self._default_operators.add(operator)
        else:
            self._default_operators.discard(operator)
        log.info("%s default operator %s enabled=%s", self.symbol, operator, enabled)

    # ---- Transfers ---------------------------------------------------------

    def transfer_from(self, operator: str, from_: str, to: str, token_id: int) -> None:
        owner = self.owner_of(token_id)
        if owner != from_.lower():
            raise AssetError(Reason.NOT_OWNER, details={"from": from_, "owner": owner, "token_id": token_id})
        if not self._is_approved_or_owner(operator, token_id):
            raise AssetError(Reason.NOT_APPROVED, details={"operator": operator, "token_id": token_id})
        to = normalize_address(to, field="to")
        if to == ZERO_ADDRESS:
            raise AssetError(Reason.INVALID_ADDRESS, details={"to": to})
        self._token_approvals.pop(token_id, None)
        self._owners[token_id] = to
        self.log.append({"event": "Transfer", "from": owner, "to": to, "token_id": token_id})

    def safe_transfer_from(self, operator: str, from_: str, to: str, token_id: int, data: bytes = b"") -> None:
        owner = self.owner_of(token_id)
        approved = self._token_approvals.get(token_id)
        mark = len(self.log)
        self.transfer_from(operator, from_, to, token_id)
        try:
            self._check_receiver(operator, from_, to, token_id, data)
        except AssetError:
            # A rejected safe transfer leaves the token where it was.
            self._owners[token_id] = owner
            if approved is not None:
                self._token_approvals[token_id] = approved
            del self.log[mark:]
            raise

    def _check_receiver(self, operator: str, from_: str, to: str, token_id: int, data: bytes) -> None:
        if self.directory is None:
            return
        contract = self.directory.contract_at(to)
        if contract is None:
            return
        hook = getattr(contract, "on_erc721_received", None)
        if hook is None or hook(operator.lower(), from_.lower(), token_id, data) != ERC721_RECEIVED:
            raise AssetError(Reason.RECEIVER_REJECTED, details={"to": to.lower(), "token_id": token_id})

    # ---- Supply ------------------------------------------------------------

    def mint(self, caller: str, to: str, token_id: Optional[int] = None) -> int:
        if caller.lower() != self.owner:
            raise AssetError(Reason.NOT_OWNER, details={"caller": caller, "collection": self.address})
        to = normalize_address(to, field="to")
        if token_id is None:
            token_id = self._next_id
        if token_id < 0 or token_id in self._owners:
            raise AssetError(Reason.INVALID_TOKEN_ID, details={"token_id": token_id})
        self._owners[token_id] = to
        self._next_id = max(self._next_id, token_id + 1)
        self.log.append({"event": "Transfer", "from": ZERO_ADDRESS, "to": to, "token_id": token_id})
        return token_id

    def burn(self, caller: str, token_id: int) -> None:
        if not self._is_approved_or_owner(caller, token_id):
            raise AssetError(Reason.NOT_APPROVED, details={"caller": caller, "token_id": token_id})
        owner = self._owners.pop(token_id)
        self._token_approvals.pop(token_id, None)
        self.log.append({"event": "Transfer", "from": owner, "to": ZERO_ADDRESS, "token_id": token_id})

    # ---- Journal -----------------------------------------------------------

    def snapshot(self):
        # The log is append-only; it is journaled by its length.
        return (
            dict(self._owners), dict(self._token_approvals), set(self._operator_approvals),
            set(self._default_operators), self._next_id, len(self.log),
        )

    def restore(self, state) -> None:
        owners, approvals, operators, defaults, self._next_id, mark = state
        self._owners, self._token_approvals = dict(owners), dict(approvals)
        self._operator_approvals, self._default_operators = set(operators), set(defaults)
        del self.log[mark:]


__all__ = ["Collection", "ERC721_RECEIVED"]

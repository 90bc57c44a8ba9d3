"""
Address → asset resolution.

The engine receives collection and payment-token *addresses* from callers and
resolves them here. The directory also records which addresses are contracts
(marketplace, treasury) so ERC-721 safe transfers can invoke receiver hooks.

The directory is itself journaled: its snapshot covers every registered token
and collection, so one participant rolls back all asset ledgers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..chain.address import normalize_address
from ..errors import Reason, ValidationError
from .erc20 import PaymentToken
from .erc721 import Collection


class AssetDirectory:
    def __init__(self) -> None:
        self._tokens: Dict[str, PaymentToken] = {}
        self._collections: Dict[str, Collection] = {}
        self._contracts: Dict[str, Any] = {}

    # ---- Registration ------------------------------------------------------

    def register_token(self, token: PaymentToken) -> PaymentToken:
        self._tokens[token.address] = token
        return token

    def register_collection(self, collection: Collection) -> Collection:
        if collection.directory is None:
            collection.directory = self
        self._collections[collection.address] = collection
        return collection

    def register_contract(self, address: str, contract: Any) -> None:
        self._contracts[normalize_address(address)] = contract

    # ---- Lookup ------------------------------------------------------------

    def token(self, address: str) -> PaymentToken:
        try:
            return self._tokens[address.lower()]
        except KeyError:
            raise ValidationError(Reason.UNKNOWN_ASSET, "unknown payment token", details={"token": address}) from None

    def collection(self, address: str) -> Collection:
        try:
            return self._collections[address.lower()]
        except KeyError:
            raise ValidationError(Reason.UNKNOWN_ASSET, "unknown collection", details={"collection": address}) from None

    def has_token(self, address: str) -> bool:
        return address.lower() in self._tokens

    def contract_at(self, address: str) -> Optional[Any]:
        return self._contracts.get(address.lower())

    def tokens(self) -> List[PaymentToken]:
        return list(self._tokens.values())

    def collections(self) -> List[Collection]:
        return list(self._collections.values())

    # ---- Journal -----------------------------------------------------------

    def snapshot(self):
        return (
            {a: t.snapshot() for a, t in self._tokens.items()},
            {a: c.snapshot() for a, c in self._collections.items()},
        )

    def restore(self, state) -> None:
        tokens, collections = state
        for addr, s in tokens.items():
            self._tokens[addr].restore(s)
        for addr, s in collections.items():
            self._collections[addr].restore(s)


__all__ = ["AssetDirectory"]

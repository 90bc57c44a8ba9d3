"""
Narrow interfaces of the external contracts the engine consumes.

Every mutating call names the acting account explicitly (`sender`, `spender`,
`operator`, `owner`); there is no implicit message sender.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """ERC-20-shaped payment token."""

    address: str

    def balance_of(self, account: str) -> int: ...
    def allowance(self, owner: str, spender: str) -> int: ...
    def approve(self, owner: str, spender: str, amount: int) -> bool: ...
    def transfer(self, sender: str, to: str, amount: int) -> bool: ...
    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...


@runtime_checkable
class NFTCollection(Protocol):
    """ERC-721-shaped collection."""

    address: str

    def owner_of(self, token_id: int) -> str: ...
    def approve(self, caller: str, to: str, token_id: int) -> None: ...
    def transfer_from(self, operator: str, from_: str, to: str, token_id: int) -> None: ...
    def safe_transfer_from(self, operator: str, from_: str, to: str, token_id: int, data: bytes = b"") -> None: ...


@runtime_checkable
class FundsReceiver(Protocol):
    """Treasury sink notified of every remittance; no return value is required."""

    address: str

    def receive_funds(self, token: str, source: str, amount: int, memo: str = "") -> None: ...


@runtime_checkable
class ERC721Receiver(Protocol):
    def on_erc721_received(self, operator: str, from_: str, token_id: int, data: bytes = b"") -> str: ...


__all__ = ["TokenLedger", "NFTCollection", "FundsReceiver", "ERC721Receiver"]

"""
Asset contracts consumed by the engine.

`interfaces` declares the narrow ERC-20 / ERC-721 / treasury shapes the engine
calls. `erc20`, `erc721` and `treasury` are in-memory devnet implementations;
`directory` resolves addresses to those objects.
"""

from .directory import AssetDirectory
from .erc20 import MAX_UINT256, PaymentToken
from .erc721 import ERC721_RECEIVED, Collection
from .interfaces import ERC721Receiver, FundsReceiver, NFTCollection, TokenLedger
from .treasury import Remittance, Treasury

__all__ = [
    "AssetDirectory",
    "PaymentToken",
    "MAX_UINT256",
    "Collection",
    "ERC721_RECEIVED",
    "TokenLedger",
    "NFTCollection",
    "FundsReceiver",
    "ERC721Receiver",
    "Treasury",
    "Remittance",
]

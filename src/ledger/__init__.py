"""
Asset ledgers — внешние коллабораторы пула.

Минимальные fungible активы с mint on demand и owner-gated выпуском.
"""

from .asset_ledger import AssetLedger, LedgerError
from .protocols import FungibleAsset

__all__ = [
    "AssetLedger",
    "LedgerError",
    "FungibleAsset",
]

"""
Domain models and value objects.

Contains fundamental domain entities: AssetPair, SwapPath, PoolSnapshot, pool events.
"""

from src.core.domain.assets import AssetPair, AssetRole, SwapPath
from src.core.domain.events import (
    AnyPoolEvent,
    DepositEvent,
    EventKind,
    PoolEvent,
    SwapEvent,
    WithdrawalEvent,
)
from src.core.domain.pool_state import PoolSnapshot, PoolStatus

__all__ = [
    # Assets
    "AssetPair",
    "AssetRole",
    "SwapPath",
    # Pool state
    "PoolSnapshot",
    "PoolStatus",
    # Events
    "AnyPoolEvent",
    "PoolEvent",
    "EventKind",
    "DepositEvent",
    "WithdrawalEvent",
    "SwapEvent",
]

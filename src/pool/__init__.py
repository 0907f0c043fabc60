"""Pool — двухактивный пул ликвидности (deposit / withdraw / swap / quote).

Состояния EMPTY / FUNDED, атомарные переходы с откатом при любой ошибке.
"""

from .config import PoolConfig
from .event_log import EventLog
from .liquidity_pool import (
    DepositResult,
    LiquidityPool,
    SwapResult,
    WithdrawResult,
)

__all__ = [
    "LiquidityPool",
    "PoolConfig",
    "EventLog",
    "DepositResult",
    "WithdrawResult",
    "SwapResult",
]

"""
Contract Validation Module

Модуль для валидации JSON контрактов пула ликвидности.
"""

from .validators import (
    EVENT_CONTRACT,
    SNAPSHOT_CONTRACT,
    PoolContract,
    load_schema,
    validate_pool_event,
    validate_pool_snapshot,
)

__all__ = [
    "PoolContract",
    "SNAPSHOT_CONTRACT",
    "EVENT_CONTRACT",
    "load_schema",
    "validate_pool_snapshot",
    "validate_pool_event",
]

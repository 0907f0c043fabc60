"""
PoolState — Модель состояния пула ликвидности

Immutable Pydantic модель, представляющая снапшот пула.
Полная совместимость с JSON Schema (src/core/contracts/schema/pool_snapshot.json).
"""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class PoolStatus(str, Enum):
    """
    Состояние пула.

    EMPTY: total_shares == 0
    FUNDED: total_shares > 0
    """

    EMPTY = "EMPTY"
    FUNDED = "FUNDED"


# =============================================================================
# POOL SNAPSHOT MODEL
# =============================================================================


class PoolSnapshot(BaseModel):
    """
    Снапшот состояния пула.

    Immutable модель (frozen=True). holders содержит только ненулевые
    балансы shares; сумма holders всегда равна total_shares.
    """

    asset_x: str = Field(..., min_length=1, description="Идентификатор актива X")
    asset_y: str = Field(..., min_length=1, description="Идентификатор актива Y")
    status: PoolStatus = Field(..., description="Состояние пула (EMPTY/FUNDED)")
    reserve_x: int = Field(..., ge=0, description="Резерв актива X")
    reserve_y: int = Field(..., ge=0, description="Резерв актива Y")
    total_shares: int = Field(..., ge=0, description="Сумма всех выпущенных shares")
    holders: dict[str, int] = Field(
        default_factory=dict, description="Балансы shares по депозиторам"
    )
    sequence: int = Field(0, ge=0, description="Номер последнего опубликованного события")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_consistency(self) -> "PoolSnapshot":
        """Согласованность status, total_shares и holders."""
        expected = PoolStatus.FUNDED if self.total_shares > 0 else PoolStatus.EMPTY
        if self.status != expected:
            raise ValueError(
                f"status {self.status.value} inconsistent with total_shares={self.total_shares}"
            )
        if sum(self.holders.values()) != self.total_shares:
            raise ValueError("sum of holder shares must equal total_shares")
        if any(v <= 0 for v in self.holders.values()):
            raise ValueError("holder balances must be positive")
        return self

"""
Pool Events — События пула

Каждое событие публикуется ровно один раз на успешную операцию и никогда
на отменённую. sequence монотонно растёт в пределах одного пула.
Совместимо с JSON Schema (src/core/contracts/schema/pool_event.json).
"""

from enum import Enum
from typing import Union

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    """Тип события пула"""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    SWAP = "swap"


class PoolEvent(BaseModel):
    """Базовая модель события."""

    sequence: int = Field(..., ge=1, description="Порядковый номер события в пуле")

    model_config = {"frozen": True}


class DepositEvent(PoolEvent):
    """Депозит ликвидности."""

    kind: EventKind = Field(EventKind.DEPOSIT, frozen=True)
    recipient: str = Field(..., min_length=1, description="Получатель shares")
    used_x: int = Field(..., gt=0, description="Принято актива X")
    used_y: int = Field(..., gt=0, description="Принято актива Y")
    shares_issued: int = Field(..., gt=0, description="Выпущено shares")


class WithdrawalEvent(PoolEvent):
    """Вывод ликвидности."""

    kind: EventKind = Field(EventKind.WITHDRAWAL, frozen=True)
    recipient: str = Field(..., min_length=1, description="Получатель активов")
    out_x: int = Field(..., ge=0, description="Выведено актива X")
    out_y: int = Field(..., ge=0, description="Выведено актива Y")


class SwapEvent(PoolEvent):
    """Своп X → Y."""

    kind: EventKind = Field(EventKind.SWAP, frozen=True)
    caller: str = Field(..., min_length=1, description="Инициатор свопа")
    amount_in: int = Field(..., gt=0, description="Вход актива X")
    amount_out: int = Field(..., gt=0, description="Выход актива Y")


AnyPoolEvent = Union[DepositEvent, WithdrawalEvent, SwapEvent]

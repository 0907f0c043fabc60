"""Конфигурация пула ликвидности."""

from dataclasses import dataclass
from typing import Optional

from src.core.errors import ConfigurationError
from src.core.math.constant_product import PRICE_SCALE


@dataclass(frozen=True)
class PoolConfig:
    """
    Конфигурация пула.

    - price_scale: fixed-point масштаб для get_price (10**18 = 18 знаков)
    - validate_contracts: проверять события и снапшоты по JSON Schema
    - event_log_maxlen: максимальная длина in-memory журнала событий (None = без ограничения)
    """
    price_scale: int = PRICE_SCALE
    validate_contracts: bool = False
    event_log_maxlen: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.price_scale, bool) or not isinstance(self.price_scale, int) or self.price_scale <= 0:
            raise ConfigurationError(f"price_scale must be a positive integer, got {self.price_scale!r}")
        if self.event_log_maxlen is not None and self.event_log_maxlen <= 0:
            raise ConfigurationError(f"event_log_maxlen must be positive, got {self.event_log_maxlen}")

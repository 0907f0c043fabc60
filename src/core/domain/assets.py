"""
Assets — Пара активов пула и их роли

Пул работает ровно с двумя активами: asset_x и asset_y. Пара фиксируется
при создании пула и неизменна. Единственное допустимое направление свопа
кодируется как SwapPath (ASSET_X → ASSET_Y), а не как произвольный список.
"""

from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, Field, ValidationError, model_validator

from src.core.errors import InvalidArgumentError


# =============================================================================
# ENUMS
# =============================================================================


class AssetRole(str, Enum):
    """Роль актива в пуле"""

    ASSET_X = "asset_x"
    ASSET_Y = "asset_y"


# =============================================================================
# ASSET PAIR MODEL
# =============================================================================


class AssetPair(BaseModel):
    """
    Пара идентификаторов активов пула.

    Immutable модель (frozen=True). Идентификаторы непустые и различны.
    Нарушение при конструировании является фатальной ошибкой конфигурации
    (pydantic ValidationError, пул оборачивает её в ConfigurationError).
    """

    asset_x: str = Field(..., min_length=1, description="Идентификатор актива X (вход свопа)")
    asset_y: str = Field(..., min_length=1, description="Идентификатор актива Y (выход свопа)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_distinct(self) -> "AssetPair":
        """Активы пары должны различаться."""
        if self.asset_x == self.asset_y:
            raise ValueError(f"asset_x and asset_y must differ, got {self.asset_x!r} twice")
        return self

    def asset_for(self, role: AssetRole) -> str:
        """Идентификатор актива по роли."""
        return self.asset_x if role == AssetRole.ASSET_X else self.asset_y

    def role_of(self, asset_id: str) -> AssetRole:
        """
        Роль актива в паре.

        Raises:
            InvalidArgumentError: актив не принадлежит паре
        """
        if asset_id == self.asset_x:
            return AssetRole.ASSET_X
        if asset_id == self.asset_y:
            return AssetRole.ASSET_Y
        raise InvalidArgumentError(f"asset {asset_id!r} is not part of pair {self.label}")

    def matches(self, asset_a: str, asset_b: str) -> bool:
        """Совпадение с парой с учётом порядка (asset_a должен быть asset_x)."""
        return asset_a == self.asset_x and asset_b == self.asset_y

    @property
    def label(self) -> str:
        return f"{self.asset_x}/{self.asset_y}"


# =============================================================================
# SWAP PATH
# =============================================================================


class SwapPath(BaseModel):
    """
    Маршрут свопа в пуле.

    Поддерживается единственное направление ASSET_X → ASSET_Y; любая другая
    длина или порядок идентификаторов отклоняется при разборе.
    """

    token_in: AssetRole = Field(AssetRole.ASSET_X, description="Роль входного актива")
    token_out: AssetRole = Field(AssetRole.ASSET_Y, description="Роль выходного актива")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_direction(self) -> "SwapPath":
        if (self.token_in, self.token_out) != (AssetRole.ASSET_X, AssetRole.ASSET_Y):
            raise ValueError("only the asset_x -> asset_y direction is supported")
        return self

    @classmethod
    def parse(cls, path: Sequence[str], pair: AssetPair) -> "SwapPath":
        """
        Разбор path из идентификаторов активов.

        Args:
            path: Упорядоченная пара идентификаторов, ровно [asset_x, asset_y]
            pair: Пара активов пула

        Raises:
            InvalidArgumentError: неверная длина, чужой актив или обратное направление
        """
        if not isinstance(path, Sequence) or isinstance(path, (str, bytes)) or len(path) != 2:
            raise InvalidArgumentError(f"path must contain exactly two assets, got {path!r}")
        token_in, token_out = pair.role_of(path[0]), pair.role_of(path[1])
        try:
            return cls(token_in=token_in, token_out=token_out)
        except ValidationError as e:
            raise InvalidArgumentError(
                f"path must be [{pair.asset_x!r}, {pair.asset_y!r}], got {list(path)!r}"
            ) from e

"""
Integer Safeguards — Валидация целочисленных сумм

Все суммы в пуле являются неотрицательными целыми числами (наименьшие единицы актива).
float, bool и NaN/Inf не допускаются: любое смешение с плавающей точкой
ломает детерминизм floor-деления.

Модуль содержит:
- Проверку типа (int, но не bool)
- Проверку положительности / неотрицательности
- Проверку идентичности (identity) участника
- Безопасное floor/ceil деление для неотрицательных целых
"""

from typing import Any

from src.core.errors import InvalidArgumentError, InvalidStateError


# =============================================================================
# ПРОВЕРКИ ТИПОВ
# =============================================================================


def is_amount(value: Any) -> bool:
    """
    Проверка, что значение является целочисленной суммой.

    bool исключается явно, так как bool является подклассом int.
    """
    return isinstance(value, int) and not isinstance(value, bool)


def validate_amount(value: Any, name: str) -> None:
    """
    Валидация неотрицательной целой суммы.

    Args:
        value: Проверяемое значение
        name: Имя параметра (для сообщения об ошибке)

    Raises:
        InvalidArgumentError: Если value не int или value < 0
    """
    if not is_amount(value):
        raise InvalidArgumentError(f"{name} must be an integer amount, got {value!r}")

    if value < 0:
        raise InvalidArgumentError(f"{name} must be non-negative, got {value}")


def validate_positive_amount(value: Any, name: str) -> None:
    """
    Валидация строго положительной целой суммы.

    Raises:
        InvalidArgumentError: Если value не int или value <= 0
    """
    if not is_amount(value):
        raise InvalidArgumentError(f"{name} must be an integer amount, got {value!r}")

    if value <= 0:
        raise InvalidArgumentError(f"{name} must be positive, got {value}")


def validate_identity(value: Any, name: str = "recipient") -> None:
    """
    Валидация идентичности участника (адрес депозитора, получателя).

    Пустая строка и None трактуются как "нулевой адрес" и отклоняются.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} must be a non-empty identity, got {value!r}")


# =============================================================================
# ЦЕЛОЧИСЛЕННОЕ ДЕЛЕНИЕ
# =============================================================================


def floor_div(numerator: int, denominator: int, name: str = "denominator") -> int:
    """
    Floor-деление неотрицательных целых с защитой от нулевого знаменателя.

    Округление всегда в пользу пула.

    Raises:
        InvalidStateError: Если denominator <= 0
    """
    if denominator <= 0:
        raise InvalidStateError(f"{name} must be positive, got {denominator}")
    return numerator // denominator


def ceil_div(numerator: int, denominator: int, name: str = "denominator") -> int:
    """
    Ceil-деление неотрицательных целых.

    Используется там, где округление вверх идёт в пользу пула
    (например, требуемый вход для exact-output свопа).
    """
    if denominator <= 0:
        raise InvalidStateError(f"{name} must be positive, got {denominator}")
    return -(-numerator // denominator)

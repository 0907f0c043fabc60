"""
Constant Product — Целочисленная арифметика пула x*y=k без комиссии

Все функции чистые: не читают и не изменяют состояние пула.
Деление floor (в пользу пула), кроме quote_in, где ceil.

ФОРМУЛЫ:
    amount_out = floor(amount_in * reserve_out / (reserve_in + amount_in))
    amount_in  = ceil(reserve_in * amount_out / (reserve_out - amount_out))

    optimal_y  = desired_x * reserve_y / reserve_x
    optimal_x  = desired_y * reserve_x / reserve_y

    shares_issued (пустой пул)   = used_x
    shares_issued (funded пул)   = used_x * total_shares / reserve_x

    out_x = shares * reserve_x / total_shares
    out_y = shares * reserve_y / total_shares

    price = reserve_y * PRICE_SCALE / reserve_x

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. amount_out > 0, иначе InsufficientOutputAmount
2. amount_out < reserve_out (следует из формулы)
3. reserve_in' * reserve_out' >= reserve_in * reserve_out после свопа
"""

import logging
from typing import Final, NamedTuple

from src.core.errors import InsufficientOutputAmount, InvalidArgumentError, InvalidStateError
from src.core.math.int_safeguards import (
    ceil_div,
    floor_div,
    validate_amount,
    validate_positive_amount,
)

logger = logging.getLogger(__name__)

# Fixed-point масштаб цены: 18 десятичных знаков дробной части
PRICE_SCALE: Final[int] = 10**18


class DepositAmounts(NamedTuple):
    """Суммы депозита после ratio-matching."""

    used_x: int
    used_y: int
    shares_issued: int


class WithdrawAmounts(NamedTuple):
    """Суммы, причитающиеся при погашении shares."""

    out_x: int
    out_y: int


# =============================================================================
# SWAP
# =============================================================================


def _validate_reserves(reserve_in: int, reserve_out: int) -> None:
    validate_amount(reserve_in, "reserve_in")
    validate_amount(reserve_out, "reserve_out")
    if reserve_in == 0 or reserve_out == 0:
        raise InvalidStateError(
            f"reserves must be positive, got reserve_in={reserve_in}, reserve_out={reserve_out}"
        )


def quote(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """
    Выход свопа по constant-product формуле без комиссии.

    Args:
        amount_in: Входная сумма (> 0)
        reserve_in: Резерв входного актива (> 0)
        reserve_out: Резерв выходного актива (> 0)

    Returns:
        floor(amount_in * reserve_out / (reserve_in + amount_in))

    Raises:
        InvalidArgumentError: amount_in <= 0
        InvalidStateError: нулевой резерв
        InsufficientOutputAmount: результат округлился до нуля
    """
    validate_positive_amount(amount_in, "amount_in")
    _validate_reserves(reserve_in, reserve_out)

    amount_out = (amount_in * reserve_out) // (reserve_in + amount_in)
    if amount_out <= 0:
        raise InsufficientOutputAmount(
            f"amount_out rounds to zero for amount_in={amount_in}, "
            f"reserve_in={reserve_in}, reserve_out={reserve_out}"
        )

    logger.debug(
        "quote: amount_in=%d reserve_in=%d reserve_out=%d -> amount_out=%d",
        amount_in, reserve_in, reserve_out, amount_out,
    )
    return amount_out


def quote_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """
    Минимальный вход, гарантирующий заданный выход (обратная формула).

    Округление вверх: пул никогда не отдаёт больше, чем позволяет x*y=k.

    Raises:
        InvalidArgumentError: amount_out <= 0 или amount_out >= reserve_out
        InvalidStateError: нулевой резерв
    """
    validate_positive_amount(amount_out, "amount_out")
    _validate_reserves(reserve_in, reserve_out)

    if amount_out >= reserve_out:
        raise InvalidArgumentError(
            f"amount_out {amount_out} must be below reserve_out {reserve_out}"
        )

    return ceil_div(reserve_in * amount_out, reserve_out - amount_out, "reserve_out - amount_out")


# =============================================================================
# DEPOSIT / WITHDRAW
# =============================================================================


def match_deposit(
    desired_x: int,
    desired_y: int,
    reserve_x: int,
    reserve_y: int,
    total_shares: int,
) -> DepositAmounts:
    """
    Ratio-matching депозита и расчёт выпускаемых shares.

    Пустой пул (total_shares == 0): принимаются desired суммы целиком,
    shares_issued = used_x (начальное соотношение share:X = 1:1).

    Funded пул: optimal_y = desired_x * reserve_y / reserve_x; если
    optimal_y <= desired_y, то (desired_x, optimal_y), иначе
    (desired_y * reserve_x / reserve_y, desired_y).
    shares_issued = used_x * total_shares / reserve_x.

    Границы min_x / min_y проверяются вызывающим.
    """
    validate_amount(desired_x, "desired_x")
    validate_amount(desired_y, "desired_y")

    if total_shares == 0:
        if desired_x <= 0 or desired_y <= 0:
            raise InvalidArgumentError(
                f"first deposit requires positive amounts, got desired_x={desired_x}, "
                f"desired_y={desired_y}"
            )
        return DepositAmounts(used_x=desired_x, used_y=desired_y, shares_issued=desired_x)

    optimal_y = floor_div(desired_x * reserve_y, reserve_x, "reserve_x")
    if optimal_y <= desired_y:
        used_x, used_y = desired_x, optimal_y
    else:
        optimal_x = floor_div(desired_y * reserve_x, reserve_y, "reserve_y")
        used_x, used_y = optimal_x, desired_y

    shares_issued = floor_div(used_x * total_shares, reserve_x, "reserve_x")
    logger.debug(
        "match_deposit: desired=(%d, %d) used=(%d, %d) shares=%d",
        desired_x, desired_y, used_x, used_y, shares_issued,
    )
    return DepositAmounts(used_x=used_x, used_y=used_y, shares_issued=shares_issued)


def redeem_shares(shares: int, reserve_x: int, reserve_y: int, total_shares: int) -> WithdrawAmounts:
    """
    Пропорциональная доля резервов для погашаемых shares.

    Floor-деление: округление всегда в пользу пула, никогда в пользу
    выводящего.

    Raises:
        InvalidArgumentError: shares <= 0 или shares > total_shares
        InvalidStateError: total_shares == 0
    """
    validate_positive_amount(shares, "shares")
    if total_shares <= 0:
        raise InvalidStateError("pool has no outstanding shares")
    if shares > total_shares:
        raise InvalidArgumentError(f"shares {shares} exceed total_shares {total_shares}")

    return WithdrawAmounts(
        out_x=(shares * reserve_x) // total_shares,
        out_y=(shares * reserve_y) // total_shares,
    )


# =============================================================================
# PRICE
# =============================================================================


def spot_price(reserve_x: int, reserve_y: int, scale: int = PRICE_SCALE) -> int:
    """
    Спот-цена X в единицах Y с фиксированной точкой.

    Returns:
        reserve_y * scale // reserve_x
    """
    _validate_reserves(reserve_x, reserve_y)
    return (reserve_y * scale) // reserve_x

"""
Core math modules для пула ликвидности

Целочисленные примитивы и constant-product формулы с детерминированным
floor/ceil округлением.
"""

# Integer Safeguards
from src.core.math.int_safeguards import (
    ceil_div,
    floor_div,
    is_amount,
    validate_amount,
    validate_identity,
    validate_positive_amount,
)

# Constant Product
from src.core.math.constant_product import (
    PRICE_SCALE,
    DepositAmounts,
    WithdrawAmounts,
    match_deposit,
    quote,
    quote_in,
    redeem_shares,
    spot_price,
)

__all__ = [
    # Integer Safeguards
    "ceil_div",
    "floor_div",
    "is_amount",
    "validate_amount",
    "validate_identity",
    "validate_positive_amount",
    # Constant Product: Constants
    "PRICE_SCALE",
    # Constant Product: Types
    "DepositAmounts",
    "WithdrawAmounts",
    # Constant Product: Functions
    "match_deposit",
    "quote",
    "quote_in",
    "redeem_shares",
    "spot_price",
]

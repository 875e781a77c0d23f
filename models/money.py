"""
Fixed-point money helpers.

All monetary values are ``Decimal`` quantized to two fraction digits with
ROUND_HALF_UP. Floats are never used for arithmetic; values that arrive as
floats (JSON bodies, SQLite REAL columns) go through ``str()`` first so the
shortest decimal representation is kept.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a NUMERIC(10, 2) column stores
MAX_AMOUNT = Decimal("99999999.99")


def to_money(value: Any) -> Decimal:
    """
    Convert a value to a two-digit Decimal.

    Raises:
        ValueError: If the value is not numeric (bools are rejected too)
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context can hold
        raise ValueError(f"Not a monetary amount: {value!r}")


def parse_amount(value: Any) -> Decimal:
    """
    Convert a user-supplied amount, bounded to what the store can hold.

    Raises:
        ValueError: Not numeric, or larger in magnitude than MAX_AMOUNT
    """
    amount = to_money(value)
    if abs(amount) > MAX_AMOUNT:
        raise ValueError(f"Amount out of range: {value!r}")
    return amount


def money_sum(values: Iterable[Decimal]) -> Decimal:
    """Sum already-quantized amounts."""
    return sum(values, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def money_param(value: Decimal) -> str:
    """Render an amount for a bound SQL parameter."""
    return str(to_money(value))


def money_json(value: Decimal) -> str:
    """Render an amount for a JSON response (string keeps exact cents)."""
    return str(to_money(value))

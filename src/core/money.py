"""Money helpers for the single store currency."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce a number or numeric string to a 2-decimal Decimal.

    Empty strings and None (as returned by the commerce backend for unset
    amounts) coerce to zero.
    """
    if value is None or value == "":
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to integer minor units (cents)."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def format_money(amount: Decimal) -> str:
    """Format an amount as a 2-decimal string, the commerce backend's wire format."""
    return f"{to_money(amount):.2f}"

"""
Money helpers. Wallet values are Decimal with two places, rounded half-up
after every arithmetic step.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

TWO_PLACES = Decimal("0.01")

TRANSFER_FEE_RATE = Decimal("0.02")
BANK_TRANSFER_FEE_RATE = Decimal("0.05")

# Money columns are Numeric(12, 2).
MAX_AMOUNT = Decimal("1e10")


def round_money(value) -> Decimal:
    """Round to 2 decimal places, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Coerce request input (number or numeric string) to Decimal.
    Returns None for missing, non-numeric, NaN, infinite or out-of-range input.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
        return None
    return amount


def percent_fee(amount: Decimal, rate: Decimal) -> Decimal:
    return round_money(amount * rate)


def to_float(value) -> float:
    """JSON-friendly rendering of a money value."""
    if value is None:
        return 0.0
    return float(round_money(value))


def format_setting_number(value) -> str:
    """Render a numeric setting the way users typed it (100, not 100.0)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return str(int(value))
    return str(value)

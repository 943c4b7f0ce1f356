"""Fixed-point helpers for monetary fields."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value: Decimal | int | float | str) -> Decimal:
    """Round half-up to two decimal places."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_amount(value: Any) -> Decimal | None:
    """Coerce loose input into a 2-decimal amount; blank or non-finite input yields None."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return round2(amount)


def clamp_percent(value: Any) -> int:
    """Clamp a commission rate into [0, 100]; malformed values become 0."""
    try:
        rate = int(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError, OverflowError):
        return 0
    return max(0, min(100, rate))

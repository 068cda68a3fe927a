# utils/money.py
"""Decimal helpers for currency amounts (2 decimal places, round half up)."""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
     """Coerce ``value`` to a Decimal rounded to cents. ``None`` becomes 0.00."""
     if value is None:
          return ZERO
     if not isinstance(value, Decimal):
          value = Decimal(str(value))
     return value.quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(amount, percentage) -> Decimal:
     """``amount * percentage / 100`` rounded to cents, half up."""
     return to_money(to_money(amount) * Decimal(str(percentage)) / Decimal(100))

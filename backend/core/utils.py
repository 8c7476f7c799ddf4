from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from .errors import ValidationError

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    try:
        return Decimal(str(val))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Not a number: {val!r}") from exc


def d_or_none(val) -> Optional[Decimal]:
    if val is None or val == "":
        return None
    return d(val)


def money(amount: Decimal) -> Decimal:
    """Quantize a monetary amount to two places, half-up."""
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def pct_of(amount: Decimal, pct: Decimal) -> Decimal:
    return d(amount) * d(pct) / HUNDRED

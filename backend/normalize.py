"""
Identifiers, money and timestamps shared by every write path.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict

from errors import ValidationFailed

CENTS = Decimal("0.01")
# Numeric(12, 2) holds ten integer digits
MAX_AMOUNT = Decimal("1e10")


def new_id() -> str:
    return uuid.uuid4().hex


def round2(value) -> Decimal:
    """
    Round a currency value to two places, ties away from zero.

    ROUND_HALF_UP in the decimal module rounds on magnitude, so -2.005
    becomes -2.01. Floats go through str() to use their shortest repr,
    otherwise 2.005 would be seen as 2.00499999...
    """
    if value is None:
        raise ValidationFailed("price is required")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise ValidationFailed(f"invalid price: {value!r}")
        rounded = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailed(f"invalid price: {value!r}")
    if abs(rounded) >= MAX_AMOUNT:
        raise ValidationFailed(f"price out of range: {value!r}")
    return rounded


def utcnow() -> datetime:
    # RFC 3339 has no sub-second part, stored timestamps follow it
    return datetime.now(timezone.utc).replace(microsecond=0)


def build_patch(update) -> Dict[str, Any]:
    """Only fields the caller actually sent end up in the update set."""
    patch = {name: value for name, value in update.model_dump().items() if value is not None}
    patch["updated_at"] = utcnow()
    return patch

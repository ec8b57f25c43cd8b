from __future__ import annotations

import math
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.booking.models import Booking

ONE_DAY = timedelta(days=1)
CENT = Decimal("0.01")


def count_nights(stay: Booking) -> int:
    """Количество ночей, не меньше одной; половина суток округляется вверх."""

    return max(1, math.floor((stay.end - stay.start) / ONE_DAY + 0.5))


def to_decimal(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount


def total_price(base_price: Any, *, nights: int, guests: int) -> Decimal:
    amount = to_decimal(base_price) * nights * guests
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


__all__ = ["ONE_DAY", "count_nights", "to_decimal", "total_price"]

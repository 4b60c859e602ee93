# tabs/services/money.py

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_cents(v) -> int:
    return int(money(v) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(TWOPLACES)


def get_tolerance() -> Decimal:
    return money(getattr(settings, "SETTLEMENT_TOLERANCE", "0.01"))

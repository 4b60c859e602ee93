# tabs/services/settlement_modes.py

"""
SETTLEMENT REQUESTS (ONE TYPE PER MODE)

Each mode carries only the input it needs:
- FullSettlement        -> nothing
- ItemsSettlement       -> item_ids
- PeopleSettlement      -> people (N >= 2)
- ValueSettlement       -> amount (> 0)

build_settlement_request() turns loose API input into one of these
and rejects fields that do not belong to the chosen mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from tabs.models import Payment
from tabs.services.exceptions import InvalidSelection, SettlementValidationError
from tabs.services.money import ZERO, money


@dataclass(frozen=True)
class FullSettlement:
    mode = Payment.MODE_FULL


@dataclass(frozen=True)
class ItemsSettlement:
    item_ids: frozenset

    mode = Payment.MODE_BY_ITEMS


@dataclass(frozen=True)
class PeopleSettlement:
    people: int

    mode = Payment.MODE_BY_PEOPLE


@dataclass(frozen=True)
class ValueSettlement:
    amount: Decimal

    mode = Payment.MODE_BY_VALUE


SettlementRequest = Union[FullSettlement, ItemsSettlement, PeopleSettlement, ValueSettlement]


def build_settlement_request(*, mode: str, item_ids=None, people=None, amount=None) -> SettlementRequest:
    mode = (mode or "").strip().lower()

    if mode == Payment.MODE_FULL:
        _forbid(mode, item_ids=item_ids, people=people, amount=amount)
        return FullSettlement()

    if mode == Payment.MODE_BY_ITEMS:
        _forbid(mode, people=people, amount=amount)
        ids = frozenset(str(i) for i in (item_ids or []))
        if not ids:
            raise InvalidSelection("Select at least one item to pay.")
        return ItemsSettlement(item_ids=ids)

    if mode == Payment.MODE_BY_PEOPLE:
        _forbid(mode, item_ids=item_ids, amount=amount)
        if isinstance(people, bool):
            raise SettlementValidationError("people must be a whole number >= 2.")
        try:
            n = int(people)
        except (TypeError, ValueError) as exc:
            raise SettlementValidationError("people must be a whole number >= 2.") from exc
        if n < 2:
            raise SettlementValidationError("people must be a whole number >= 2.")
        return PeopleSettlement(people=n)

    if mode == Payment.MODE_BY_VALUE:
        _forbid(mode, item_ids=item_ids, people=people)
        try:
            value = money(amount)
        except (InvalidOperation, ValueError) as exc:
            raise SettlementValidationError(f"Invalid amount: {amount!r}") from exc
        if value <= ZERO:
            raise SettlementValidationError("amount must be greater than zero.")
        return ValueSettlement(amount=value)

    raise SettlementValidationError(f"Unknown settlement mode: {mode!r}")


def _forbid(mode: str, **fields):
    extra = sorted(name for name, value in fields.items() if value not in (None, "", [], ()))
    if extra:
        raise SettlementValidationError(
            f"Mode '{mode}' does not accept: {', '.join(extra)}."
        )

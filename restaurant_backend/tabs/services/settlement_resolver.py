# tabs/services/settlement_resolver.py

"""
SETTLEMENT STRATEGY RESOLVER

Turns a settlement request into the amount to collect, validated
against a freshly aggregated TableBalance.

DESIGN PRINCIPLES:
- No database reads or writes
- Same balance + same request -> same result
- Every failure is raised before anything is mutated

By people:
- The share is fixed from the ORIGINAL total (totalOriginal / N) and
  does not shrink as people pay.
- Shares already covered = floor(totalPaid / share).
- A later change to totalOriginal (item removal) does not rebalance
  shares that were already paid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal

from tabs.models import Payment
from tabs.services.balance_service import TableBalance
from tabs.services.exceptions import (
    AmountExceedsRemaining,
    InvalidSelection,
    NothingToSettle,
    SettlementValidationError,
)
from tabs.services.money import ZERO, get_tolerance, money
from tabs.services.settlement_modes import (
    FullSettlement,
    ItemsSettlement,
    PeopleSettlement,
    SettlementRequest,
    ValueSettlement,
)


@dataclass(frozen=True)
class ResolvedSettlement:
    mode: str
    amount: Decimal
    item_ids: tuple = field(default_factory=tuple)
    per_person_share: Decimal | None = None
    # Shares covered by the balance this was resolved against.
    paid_people_count: int | None = None

    @property
    def is_proportional(self) -> bool:
        return self.mode in Payment.PROPORTIONAL_MODES


def per_person_share(*, total_original: Decimal, people: int) -> Decimal:
    if people < 2:
        raise SettlementValidationError("people must be a whole number >= 2.")
    return money(Decimal(total_original) / Decimal(people))


def paid_people_count(*, total_paid: Decimal, share: Decimal) -> int:
    if share <= ZERO:
        return 0
    return int((Decimal(total_paid) / share).to_integral_value(rounding=ROUND_FLOOR))


def resolve_settlement(*, balance: TableBalance, request: SettlementRequest, tolerance=None) -> ResolvedSettlement:
    if tolerance is None:
        tolerance = get_tolerance()

    remaining = balance.total_remaining
    if remaining <= tolerance:
        raise NothingToSettle("This table has nothing left to settle.")

    if isinstance(request, FullSettlement):
        return ResolvedSettlement(mode=request.mode, amount=remaining)

    if isinstance(request, ItemsSettlement):
        return _resolve_items(balance=balance, request=request)

    if isinstance(request, PeopleSettlement):
        share = per_person_share(total_original=balance.total_original, people=request.people)
        return ResolvedSettlement(
            mode=request.mode,
            amount=min(share, remaining),
            per_person_share=share,
            paid_people_count=paid_people_count(total_paid=balance.total_paid, share=share),
        )

    if isinstance(request, ValueSettlement):
        amount = money(request.amount)
        if amount <= ZERO:
            raise SettlementValidationError("amount must be greater than zero.")
        if amount > remaining:
            raise AmountExceedsRemaining(
                f"Amount {amount} exceeds the remaining balance of {remaining}."
            )
        return ResolvedSettlement(mode=request.mode, amount=amount)

    raise SettlementValidationError(f"Unsupported settlement request: {request!r}")


def _resolve_items(*, balance: TableBalance, request: ItemsSettlement) -> ResolvedSettlement:
    if not request.item_ids:
        raise InvalidSelection("Select at least one item to pay.")

    unpaid = {str(item.item_id): item for item in balance.unpaid_items}
    unknown = sorted(i for i in request.item_ids if i not in unpaid)
    if unknown:
        raise InvalidSelection(
            f"Items are already paid or do not belong to this table: {', '.join(unknown)}"
        )

    # Keep the tab's creation order so item updates run deterministically.
    selected = [item for item in balance.unpaid_items if str(item.item_id) in request.item_ids]
    amount = sum((item.subtotal for item in selected), ZERO)

    if amount <= ZERO:
        raise InvalidSelection("Selected items have no value to collect.")
    if amount > balance.total_remaining:
        raise AmountExceedsRemaining(
            f"Selected items total {amount}, but only {balance.total_remaining} remains "
            "after earlier partial payments."
        )

    return ResolvedSettlement(
        mode=request.mode,
        amount=amount,
        item_ids=tuple(item.item_id for item in selected),
    )

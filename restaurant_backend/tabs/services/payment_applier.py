# tabs/services/payment_applier.py

"""
PAYMENT APPLIER

Records one resolved settlement against a table.

Contract (must run inside LedgerStore.atomic()):
1) Reload the table's open orders + items under row locks and
   re-aggregate. This recompute is mandatory: the resolved amount was
   computed from a snapshot another terminal may have changed.
2) Re-validate the resolved settlement against the fresh balance.
3) Insert the Payment audit record FIRST.
4) Apply the balance mutation:
   - by items: compare-and-set each item to paid
   - full / by people / by value: spread the amount over the open
     orders in proportion to each order's total
5) Any failure raises and the surrounding transaction rolls back the
   Payment together with the mutations.

The applier never moves money; capture already happened at the till.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.utils import timezone

from tabs.models import Payment
from tabs.services.balance_service import OrderBalance, TableBalance, load_table_balance
from tabs.services.exceptions import (
    AmountExceedsRemaining,
    InconsistentState,
    InvalidSelection,
    ItemAlreadySettled,
    NothingToSettle,
    SettlementValidationError,
)
from tabs.services.money import ZERO, from_cents, get_tolerance, money, to_cents
from tabs.services.settlement_resolver import ResolvedSettlement

logger = logging.getLogger("settlement")

VALID_METHODS = {choice for choice, _ in Payment.METHOD_CHOICES}


def normalize_method(method: str | None) -> str:
    m = (method or "").strip().lower()
    if m not in VALID_METHODS:
        raise SettlementValidationError(
            f"Invalid payment method: {method!r}. Use one of: {', '.join(sorted(VALID_METHODS))}."
        )
    return m


# ============================================================
# PROPORTIONAL DISTRIBUTION
# ============================================================


def distribute_proportionally(*, orders: list[OrderBalance], amount: Decimal) -> list[tuple[object, Decimal]]:
    """
    Split amount across orders in proportion to each order's total.

    Integer cents throughout:
    - floor each share, the leftover cents go to the last order
    - no order may absorb more than its outstanding value; the excess
      is carried, last order first, into orders with spare room

    Returns [(order_id, increment)] for non-zero increments; the
    increments always sum to amount exactly.
    """
    amount_cents = to_cents(amount)
    if amount_cents <= 0 or not orders:
        return []

    capacity = [to_cents(o.outstanding) for o in orders]
    if sum(capacity) < amount_cents:
        raise InconsistentState(
            f"Open orders can absorb {from_cents(sum(capacity))}, "
            f"cannot apply {from_cents(amount_cents)}."
        )

    weights = [max(0, to_cents(o.total)) for o in orders]
    total_weight = sum(weights)
    if total_weight <= 0:
        weights = capacity
        total_weight = sum(capacity)

    shares = [amount_cents * w // total_weight for w in weights]
    shares[-1] += amount_cents - sum(shares)

    carry = 0
    for i, cap in enumerate(capacity):
        if shares[i] > cap:
            carry += shares[i] - cap
            shares[i] = cap

    for i in reversed(range(len(shares))):
        if carry <= 0:
            break
        room = capacity[i] - shares[i]
        take = min(room, carry)
        shares[i] += take
        carry -= take

    return [
        (order.order_id, from_cents(cents))
        for order, cents in zip(orders, shares)
        if cents > 0
    ]


# ============================================================
# APPLY
# ============================================================


def apply_payment(
    *,
    store,
    table_number: int,
    resolved: ResolvedSettlement,
    method: str,
    user=None,
) -> Payment:
    method = normalize_method(method)

    balance = load_table_balance(store=store, table_number=table_number, lock=True)
    _revalidate(balance=balance, resolved=resolved)

    amount = money(resolved.amount)

    # Audit record first: a half-applied action must leave a trace.
    payment = store.insert_payment(
        table_number=table_number,
        order_id=balance.orders[0].order_id,
        amount=amount,
        method=method,
        mode=resolved.mode,
        items_count=len(resolved.item_ids) if resolved.mode == Payment.MODE_BY_ITEMS else 0,
        created_by=user if getattr(user, "is_authenticated", False) else None,
    )

    if resolved.mode == Payment.MODE_BY_ITEMS:
        _mark_items_paid(store=store, payment=payment, item_ids=resolved.item_ids, method=method)
    else:
        _apply_proportional(store=store, balance=balance, amount=amount)

    logger.info(
        "Payment applied",
        extra={
            "table_number": table_number,
            "payment_id": str(payment.id),
            "mode": resolved.mode,
            "method": method,
            "amount": str(amount),
        },
    )
    return payment


def _revalidate(*, balance: TableBalance, resolved: ResolvedSettlement):
    if not balance.orders or balance.total_remaining <= get_tolerance():
        raise NothingToSettle("This table has nothing left to settle.")

    amount = money(resolved.amount)
    if amount <= ZERO:
        raise SettlementValidationError("Payment amount must be greater than zero.")
    if amount > balance.total_remaining:
        raise AmountExceedsRemaining(
            f"Amount {amount} exceeds the remaining balance of {balance.total_remaining}."
        )

    if resolved.mode != Payment.MODE_BY_ITEMS:
        return

    if not resolved.item_ids:
        raise InvalidSelection("Select at least one item to pay.")

    unpaid = {str(i.item_id): i for i in balance.unpaid_items}
    settled = [str(i) for i in resolved.item_ids if str(i) in balance.paid_item_ids]
    if settled:
        raise ItemAlreadySettled(
            "Some selected items were just paid on another terminal.",
            item_ids=settled,
        )

    missing = [str(i) for i in resolved.item_ids if str(i) not in unpaid]
    if missing:
        raise InvalidSelection(
            f"Items do not belong to this table: {', '.join(missing)}"
        )

    expected = sum((unpaid[str(i)].subtotal for i in resolved.item_ids), ZERO)
    if expected != amount:
        raise InvalidSelection(
            f"Selected items now total {expected}, not {amount}. Refresh the tab and retry."
        )


def _mark_items_paid(*, store, payment: Payment, item_ids, method: str):
    now = timezone.now()
    for item_id in item_ids:
        ok = store.update_order_item(
            item_id,
            paid_at=now,
            payment_method=method,
            payment=payment,
        )
        if not ok:
            logger.warning(
                "Item settled concurrently",
                extra={"item_id": str(item_id), "payment_id": str(payment.id)},
            )
            raise ItemAlreadySettled(
                "This item was just paid on another terminal.",
                item_ids=[str(item_id)],
            )


def _apply_proportional(*, store, balance: TableBalance, amount: Decimal):
    for order_id, increment in distribute_proportionally(orders=list(balance.orders), amount=amount):
        ok = store.update_order(order_id, paid_amount_increment=increment)
        if not ok:
            raise InconsistentState(
                f"Order {order_id} cannot absorb {increment} without exceeding its total."
            )

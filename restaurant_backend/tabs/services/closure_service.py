# tabs/services/closure_service.py

"""
CLOSURE DETECTOR

Decides, after a payment, whether the table's tab is fully discharged.

FLOW:
1) Reload open orders + items from the store (never reuse the
   pre-payment copies; another terminal may have written since)
2) Re-aggregate and check invariants (InconsistentState aborts)
3) If totalRemaining <= tolerance: move every open order to "paid"

The "paid" transition is the authoritative "tab closed" signal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tabs.models import Order
from tabs.services.balance_service import TableBalance, aggregate, assert_consistent
from tabs.services.exceptions import InconsistentState
from tabs.services.money import ZERO
from tabs.services.order_lifecycle import InvalidOrderTransitionError, validate_transition

logger = logging.getLogger("settlement")


@dataclass(frozen=True)
class ClosureResult:
    balance: TableBalance
    closed: bool
    closed_order_ids: tuple = field(default_factory=tuple)


def detect_closure(*, store, table_number: int, method: str | None = None, tolerance=None) -> ClosureResult:
    orders = store.list_open_orders_for_table(table_number, lock=True)
    balance = _aggregate_checked(store=store, orders=orders)

    if not orders or balance.total_paid <= ZERO or not balance.is_settled(tolerance):
        return ClosureResult(balance=balance, closed=False)

    closed = []
    for order in orders:
        try:
            validate_transition(order=order, target_status=Order.STATUS_PAID)
        except InvalidOrderTransitionError as exc:
            raise InconsistentState(str(exc)) from exc

        notes = None
        if method and not order.notes:
            notes = f"Paid via {method}"

        store.update_order(order.id, status=Order.STATUS_PAID, notes=notes)
        closed.append(order.id)

    logger.info(
        "Table closed",
        extra={
            "table_number": table_number,
            "orders": [str(oid) for oid in closed],
            "total_original": str(balance.total_original),
            "total_paid": str(balance.total_paid),
        },
    )
    return ClosureResult(balance=balance, closed=True, closed_order_ids=tuple(closed))


def _aggregate_checked(*, store, orders) -> TableBalance:
    balance = aggregate(orders=orders, items=store.list_items_for_orders([o.id for o in orders]))
    assert_consistent(balance)
    return balance

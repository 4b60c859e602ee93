# tabs/services/item_service.py

"""
ORDER ITEM REMOVAL

Removes one unpaid line from an open order and keeps the owning
order's total in step, in one transaction.

Rules:
- Paid items are never removed (their money is already recorded).
- An order's total may not drop below what was already paid on it
  through proportional payments.
- Removing a line can leave the rest of the tab fully paid; the closure
  detector runs in that case.
"""

from __future__ import annotations

import logging

from tabs.models import Order
from tabs.services.closure_service import detect_closure
from tabs.services.exceptions import InvalidSelection
from tabs.services.ledger_store import LedgerStore
from tabs.services.money import ZERO, money

logger = logging.getLogger("settlement")


def remove_order_item(*, item_id, store: LedgerStore | None = None) -> Order:
    store = store or LedgerStore()

    with store.atomic():
        item = store.get_item(item_id, lock=True)
        if item is None:
            raise InvalidSelection(f"Item {item_id} not found.")

        order = store.get_order(item.order_id, lock=True)

        if item.is_paid:
            raise InvalidSelection("Paid items cannot be removed.")
        if not order.is_open:
            raise InvalidSelection(f"Order #{order.order_number} is {order.status}; items are locked.")

        subtotal = money(item.subtotal)
        new_total = max(ZERO, money(order.total) - subtotal)
        paid_items_total = sum(
            (money(i.subtotal) for i in store.list_items_for_orders([order.pk]) if i.is_paid),
            ZERO,
        )
        if money(order.paid_amount) + paid_items_total > new_total:
            raise InvalidSelection(
                "Partial payments already cover this order beyond the new total; "
                "the item cannot be removed."
            )

        if not store.delete_unpaid_item(item.pk):
            raise InvalidSelection("Paid items cannot be removed.")
        store.update_order(order.pk, total=new_total)
        order = store.get_order(order.pk)

        logger.info(
            "Order item removed",
            extra={
                "item_id": str(item_id),
                "order_id": str(order.id),
                "subtotal": str(subtotal),
                "new_total": str(order.total),
            },
        )

        if order.table_number is not None:
            closure = detect_closure(store=store, table_number=order.table_number)
            if closure.closed:
                order = store.get_order(order.pk)

    return order

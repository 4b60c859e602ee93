# tabs/services/balance_service.py

"""
TABLE BALANCE SERVICE (AUTHORITATIVE)

This module answers ONE question:
"How much of this table's tab is still owed?"

Responsibilities:
- Aggregate a table's open orders and their items into one balance
- List unpaid items across orders, in creation order
- Check the balance invariants after a mutation

RULES:
- aggregate() is PURE: no reads, no writes. Callers pass freshly loaded records.
- load_table_balance() is the one read helper: it loads those records
  through the ledger store and hands them to aggregate().
- Never trust a cached running total; recompute from source records.
- Cancelled orders (and their items) are ignored entirely.
- Decimal arithmetic only; rounding happens at the API boundary.

Two payment pools, never overlapping:
- items paid in "by items" mode      -> Σ subtotal where is_paid
- proportional payments on orders    -> Σ order.paid_amount
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from tabs.models import Order
from tabs.services.exceptions import InconsistentState
from tabs.services.money import ZERO, get_tolerance, money


@dataclass(frozen=True)
class UnpaidItem:
    item_id: object
    order_id: object
    order_number: int | None
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class OrderBalance:
    order_id: object
    order_number: int | None
    status: str
    total: Decimal
    paid_amount: Decimal
    items_total: Decimal
    paid_items_total: Decimal

    @property
    def outstanding(self) -> Decimal:
        """What this order can still absorb from a proportional payment."""
        return max(ZERO, self.total - self.paid_amount - self.paid_items_total)


@dataclass(frozen=True)
class TableBalance:
    total_original: Decimal
    paid_items_total: Decimal
    proportional_paid_total: Decimal
    total_paid: Decimal
    total_remaining: Decimal
    unpaid_items: tuple[UnpaidItem, ...] = field(default_factory=tuple)
    paid_item_ids: frozenset = field(default_factory=frozenset)
    orders: tuple[OrderBalance, ...] = field(default_factory=tuple)

    @property
    def order_ids(self) -> list:
        return [o.order_id for o in self.orders]

    def is_settled(self, tolerance: Decimal | None = None) -> bool:
        if tolerance is None:
            tolerance = get_tolerance()
        return self.total_remaining <= tolerance


def aggregate(*, orders, items) -> TableBalance:
    """
    Aggregate a table's orders and items.

    - totalOriginal  = Σ subtotal of items of non-cancelled orders
    - totalPaid      = Σ subtotal(paid items) + Σ paid_amount(orders)
    - totalRemaining = max(0, totalOriginal - totalPaid)
    """
    live_orders = [o for o in orders if o.status != Order.STATUS_CANCELLED]
    by_id = {o.id: o for o in live_orders}

    items_total = {oid: ZERO for oid in by_id}
    paid_items = {oid: ZERO for oid in by_id}
    unpaid = []
    paid_ids = set()

    for item in items:
        order = by_id.get(item.order_id)
        if order is None:
            continue

        subtotal = money(item.subtotal)
        items_total[order.id] += subtotal

        if item.is_paid:
            paid_items[order.id] += subtotal
            paid_ids.add(str(item.id))
        else:
            unpaid.append(
                UnpaidItem(
                    item_id=item.id,
                    order_id=order.id,
                    order_number=order.order_number,
                    product_name=getattr(item, "product_name", "") or "",
                    quantity=int(item.quantity or 0),
                    unit_price=money(item.unit_price),
                    subtotal=subtotal,
                )
            )

    order_balances = tuple(
        OrderBalance(
            order_id=o.id,
            order_number=o.order_number,
            status=o.status,
            total=money(o.total),
            paid_amount=money(o.paid_amount),
            items_total=items_total[o.id],
            paid_items_total=paid_items[o.id],
        )
        for o in live_orders
    )

    total_original = sum(items_total.values(), ZERO)
    paid_items_total = sum(paid_items.values(), ZERO)
    proportional_paid_total = sum((ob.paid_amount for ob in order_balances), ZERO)
    total_paid = paid_items_total + proportional_paid_total

    return TableBalance(
        total_original=total_original,
        paid_items_total=paid_items_total,
        proportional_paid_total=proportional_paid_total,
        total_paid=total_paid,
        total_remaining=max(ZERO, total_original - total_paid),
        unpaid_items=tuple(unpaid),
        paid_item_ids=frozenset(paid_ids),
        orders=order_balances,
    )


def assert_consistent(balance: TableBalance) -> None:
    """
    Raise InconsistentState if the balance breaks an invariant:
    - an order paid above its own total
    - more money collected than the table was worth
    """
    for ob in balance.orders:
        if ob.paid_amount < ZERO or ob.paid_amount > ob.total:
            raise InconsistentState(
                f"Order {ob.order_id} has paid_amount {ob.paid_amount} outside [0, {ob.total}]."
            )

    if balance.total_paid > balance.total_original:
        raise InconsistentState(
            f"Table collected {balance.total_paid} against an original total of "
            f"{balance.total_original}."
        )


def load_table_balance(*, store, table_number: int, lock: bool = False) -> TableBalance:
    """Reload a table's open orders and items from the store and aggregate them."""
    orders = store.list_open_orders_for_table(table_number, lock=lock)
    items = store.list_items_for_orders([o.id for o in orders])
    return aggregate(orders=orders, items=items)

# tabs/services/reconciliation_service.py

"""
TAB RECONCILIATION

Finds tabs whose stored state does not add up, so partial application
can be repaired instead of tolerated.

Checks, per table with open orders:
- item_without_payment     paid item with no settling Payment
- order_overpaid           order.paid_amount > order.total
- proportional_mismatch    Σ proportional Payments != Σ order.paid_amount
- items_payment_mismatch   by-items Payment amount != Σ subtotal of its items
- stale_order_total        order.total != Σ subtotal of its items
- overcollected            totalPaid > totalOriginal
- settled_but_open         remaining within tolerance, orders still open

Only settled_but_open is repaired automatically (by running the closure
detector); everything else needs a person to look at it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from tabs.models import Payment
from tabs.services.balance_service import TableBalance, aggregate
from tabs.services.closure_service import ClosureResult, detect_closure
from tabs.services.ledger_store import LedgerStore
from tabs.services.money import ZERO, get_tolerance, money

logger = logging.getLogger("settlement")


@dataclass(frozen=True)
class ReconciliationIssue:
    code: str
    message: str


@dataclass
class TableReconciliation:
    table_number: int
    balance: TableBalance
    issues: list[ReconciliationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def closable(self) -> bool:
        return any(i.code == "settled_but_open" for i in self.issues)


def reconcile_table(*, table_number: int, store: LedgerStore | None = None) -> TableReconciliation:
    store = store or LedgerStore()

    orders = store.list_open_orders_for_table(table_number)
    order_ids = [o.id for o in orders]
    items = store.list_items_for_orders(order_ids)
    payments = store.list_payments_for_orders(order_ids)

    balance = aggregate(orders=orders, items=items)
    report = TableReconciliation(table_number=table_number, balance=balance)
    issues = report.issues

    for item in items:
        if item.is_paid and item.settled_by_payment_id is None:
            issues.append(
                ReconciliationIssue(
                    "item_without_payment",
                    f"Item {item.id} is paid but no Payment settled it.",
                )
            )

    for ob in balance.orders:
        if ob.paid_amount > ob.total:
            issues.append(
                ReconciliationIssue(
                    "order_overpaid",
                    f"Order #{ob.order_number} paid_amount {ob.paid_amount} exceeds total {ob.total}.",
                )
            )
        if ob.items_total != ob.total:
            issues.append(
                ReconciliationIssue(
                    "stale_order_total",
                    f"Order #{ob.order_number} total {ob.total} != items {ob.items_total}.",
                )
            )

    proportional_paid = sum(
        (money(p.amount) for p in payments if p.mode in Payment.PROPORTIONAL_MODES),
        ZERO,
    )
    if proportional_paid != balance.proportional_paid_total:
        issues.append(
            ReconciliationIssue(
                "proportional_mismatch",
                f"Proportional payments sum {proportional_paid}, "
                f"orders record {balance.proportional_paid_total}.",
            )
        )

    settled_by = defaultdict(lambda: ZERO)
    for item in items:
        if item.is_paid and item.settled_by_payment_id is not None:
            settled_by[item.settled_by_payment_id] += money(item.subtotal)

    for p in payments:
        if p.mode != Payment.MODE_BY_ITEMS:
            continue
        covered = settled_by.get(p.id, ZERO)
        if covered != money(p.amount):
            issues.append(
                ReconciliationIssue(
                    "items_payment_mismatch",
                    f"Payment {p.id} recorded {p.amount} but its items sum {covered}.",
                )
            )

    if balance.total_paid > balance.total_original:
        issues.append(
            ReconciliationIssue(
                "overcollected",
                f"Collected {balance.total_paid} against {balance.total_original}.",
            )
        )

    if orders and balance.total_paid > ZERO and balance.total_remaining <= get_tolerance():
        issues.append(
            ReconciliationIssue(
                "settled_but_open",
                f"Remaining {balance.total_remaining} is within tolerance but the tab is open.",
            )
        )

    if issues:
        logger.warning(
            "Tab reconciliation found issues",
            extra={"table_number": table_number, "codes": [i.code for i in issues]},
        )

    return report


def reconcile_open_tables(*, store: LedgerStore | None = None) -> list[TableReconciliation]:
    store = store or LedgerStore()
    return [reconcile_table(table_number=n, store=store) for n in store.list_open_table_numbers()]


def close_settled_table(*, table_number: int, store: LedgerStore | None = None) -> ClosureResult:
    store = store or LedgerStore()
    with store.atomic():
        return detect_closure(store=store, table_number=table_number)

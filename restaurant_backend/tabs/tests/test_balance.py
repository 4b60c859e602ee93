# tabs/tests/test_balance.py

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase

from tabs.models import Order, OrderItem
from tabs.services.balance_service import aggregate, assert_consistent, load_table_balance
from tabs.services.exceptions import InconsistentState
from tabs.services.ledger_store import LedgerStore
from tabs.tests.helpers import item_named, make_order


class TableBalanceAggregationTests(TestCase):
    def setUp(self):
        self.store = LedgerStore()

    def test_single_order_two_items(self):
        make_order(table_number=5, items=[("Steak", "20.00"), ("Wine", "15.00")])

        balance = load_table_balance(store=self.store, table_number=5)

        self.assertEqual(balance.total_original, Decimal("35.00"))
        self.assertEqual(balance.total_paid, Decimal("0.00"))
        self.assertEqual(balance.total_remaining, Decimal("35.00"))
        self.assertEqual([i.product_name for i in balance.unpaid_items], ["Steak", "Wine"])

    def test_empty_table_has_zero_balance(self):
        balance = load_table_balance(store=self.store, table_number=42)

        self.assertEqual(balance.total_original, Decimal("0.00"))
        self.assertEqual(balance.total_remaining, Decimal("0.00"))
        self.assertEqual(balance.unpaid_items, ())
        self.assertEqual(balance.orders, ())

    def test_paid_items_and_proportional_pools_do_not_overlap(self):
        order = make_order(
            table_number=5,
            items=[("Steak", "20.00"), ("Wine", "15.00")],
            paid_amount="5.00",
        )
        OrderItem.objects.filter(pk=item_named(order, "Steak").pk).update(is_paid=True)

        balance = load_table_balance(store=self.store, table_number=5)

        self.assertEqual(balance.paid_items_total, Decimal("20.00"))
        self.assertEqual(balance.proportional_paid_total, Decimal("5.00"))
        self.assertEqual(balance.total_paid, Decimal("25.00"))
        self.assertEqual(balance.total_remaining, Decimal("10.00"))
        self.assertEqual([i.product_name for i in balance.unpaid_items], ["Wine"])
        self.assertEqual(balance.orders[0].outstanding, Decimal("10.00"))

    def test_multiple_orders_are_combined_in_creation_order(self):
        make_order(table_number=7, items=[("Pasta", "12.50")])
        make_order(table_number=7, items=[("Soda", "4.00", 2)])
        make_order(table_number=8, items=[("Other table", "99.00")])

        balance = load_table_balance(store=self.store, table_number=7)

        self.assertEqual(balance.total_original, Decimal("20.50"))
        self.assertEqual([i.product_name for i in balance.unpaid_items], ["Pasta", "Soda"])
        self.assertEqual(len(balance.orders), 2)

    def test_closed_and_cancelled_orders_are_ignored(self):
        make_order(table_number=3, items=[("Old", "10.00")], status=Order.STATUS_PAID)
        make_order(table_number=3, items=[("Void", "10.00")], status=Order.STATUS_CANCELLED)
        make_order(table_number=3, items=[("Live", "8.00")], status=Order.STATUS_READY)

        balance = load_table_balance(store=self.store, table_number=3)

        self.assertEqual(balance.total_original, Decimal("8.00"))
        self.assertEqual(len(balance.orders), 1)

    def test_aggregation_is_pure_and_repeatable(self):
        order = make_order(table_number=5, items=[("A", "10.00"), ("B", "5.55")], paid_amount="3.33")
        orders = [order]
        items = list(order.items.all())

        first = aggregate(orders=orders, items=items)
        second = aggregate(orders=orders, items=items)

        self.assertEqual(first, second)
        self.assertEqual(OrderItem.objects.filter(is_paid=True).count(), 0)

    def test_cancelled_order_passed_directly_is_skipped(self):
        order = make_order(table_number=5, items=[("A", "10.00")], status=Order.STATUS_CANCELLED)

        balance = aggregate(orders=[order], items=list(order.items.all()))

        self.assertEqual(balance.total_original, Decimal("0.00"))
        self.assertEqual(balance.orders, ())


class BalanceConsistencyTests(TestCase):
    def test_overpaid_order_is_inconsistent(self):
        order = make_order(table_number=5, items=[("A", "10.00")])
        Order.objects.filter(pk=order.pk).update(paid_amount=Decimal("12.00"))
        order.refresh_from_db()

        balance = aggregate(orders=[order], items=list(order.items.all()))

        with self.assertRaises(InconsistentState):
            assert_consistent(balance)

    def test_double_counted_item_is_inconsistent(self):
        order = make_order(table_number=5, items=[("A", "10.00"), ("B", "10.00")], paid_amount="15.00")
        OrderItem.objects.filter(pk=item_named(order, "A").pk).update(is_paid=True)
        order.refresh_from_db()

        balance = aggregate(orders=[order], items=list(order.items.all()))

        with self.assertRaises(InconsistentState):
            assert_consistent(balance)

    def test_consistent_balance_passes(self):
        order = make_order(table_number=5, items=[("A", "10.00")], paid_amount="4.00")

        balance = aggregate(orders=[order], items=list(order.items.all()))

        assert_consistent(balance)
        self.assertFalse(balance.is_settled())

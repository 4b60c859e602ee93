# tabs/tests/test_concurrency.py

"""
Interleavings between two terminals settling the same table.

The second terminal resolves against a snapshot taken before the first
one committed, then tries to apply.
"""

from __future__ import annotations

from decimal import Decimal
from unittest import mock

from django.db import OperationalError
from django.test import TestCase

from tabs.models import Order, OrderItem, Payment
from tabs.services.balance_service import load_table_balance
from tabs.services.exceptions import (
    AmountExceedsRemaining,
    ItemAlreadySettled,
    NothingToSettle,
    StoreUnavailable,
)
from tabs.services.ledger_store import LedgerStore
from tabs.services.payment_applier import apply_payment
from tabs.services.settlement_modes import build_settlement_request
from tabs.services.settlement_orchestrator import settle_table
from tabs.services.settlement_resolver import resolve_settlement
from tabs.tests.helpers import item_named, make_order

D = Decimal


class StaleSettlementTests(TestCase):
    def setUp(self):
        self.store = LedgerStore()
        self.order = make_order(table_number=5, items=[("Steak", "20.00"), ("Wine", "15.00")])
        self.steak = item_named(self.order, "Steak")

    def _resolve(self, **kwargs):
        balance = load_table_balance(store=self.store, table_number=5)
        return resolve_settlement(balance=balance, request=build_settlement_request(**kwargs))

    def _apply(self, resolved):
        with self.store.atomic():
            return apply_payment(store=self.store, table_number=5, resolved=resolved, method="cash")

    def test_second_by_items_on_same_item_is_rejected(self):
        stale = self._resolve(mode="by_items", item_ids=[self.steak.id])

        settle_table(
            table_number=5,
            request=build_settlement_request(mode="by_items", item_ids=[self.steak.id]),
            method="card",
        )

        with self.assertRaises(ItemAlreadySettled) as ctx:
            self._apply(stale)

        self.assertEqual(ctx.exception.item_ids, (str(self.steak.id),))
        self.assertEqual(Payment.objects.filter(mode=Payment.MODE_BY_ITEMS).count(), 1)
        self.steak.refresh_from_db()
        self.assertEqual(self.steak.payment_method, Payment.METHOD_CARD)

    def test_compare_and_set_rejects_when_snapshot_check_is_bypassed(self):
        stale_balance = load_table_balance(store=self.store, table_number=5)
        stale = self._resolve(mode="by_items", item_ids=[self.steak.id])

        settle_table(
            table_number=5,
            request=build_settlement_request(mode="by_items", item_ids=[self.steak.id]),
            method="card",
        )

        with mock.patch(
            "tabs.services.payment_applier.load_table_balance",
            return_value=stale_balance,
        ):
            with self.assertRaises(ItemAlreadySettled):
                self._apply(stale)

        # The losing Payment was rolled back with the transaction.
        self.assertEqual(Payment.objects.count(), 1)
        self.assertEqual(OrderItem.objects.filter(is_paid=True).count(), 1)

    def test_stale_value_payment_cannot_overshoot(self):
        stale = self._resolve(mode="by_value", amount="30.00")

        settle_table(
            table_number=5,
            request=build_settlement_request(mode="by_value", amount="10.00"),
            method="cash",
        )

        with self.assertRaises(AmountExceedsRemaining):
            self._apply(stale)

        self.order.refresh_from_db()
        self.assertEqual(self.order.paid_amount, D("10.00"))
        self.assertEqual(Payment.objects.count(), 1)

    def test_stale_full_payment_after_close(self):
        stale = self._resolve(mode="full")

        settle_table(table_number=5, request=build_settlement_request(mode="full"), method="cash")

        with self.assertRaises(NothingToSettle):
            self._apply(stale)

        self.assertEqual(Payment.objects.count(), 1)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)


class StoreUnavailableTests(TestCase):
    def test_read_failure_surfaces_as_store_unavailable(self):
        make_order(table_number=5, items=[("Steak", "20.00")])

        with mock.patch(
            "tabs.services.ledger_store.Order.objects.filter",
            side_effect=OperationalError("connection refused"),
        ):
            with self.assertRaises(StoreUnavailable) as ctx:
                settle_table(table_number=5, request=build_settlement_request(mode="full"), method="cash")

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(Payment.objects.count(), 0)

    def test_write_failure_rolls_back_everything(self):
        order = make_order(table_number=5, items=[("Steak", "20.00")])

        with mock.patch.object(
            LedgerStore,
            "insert_payment",
            side_effect=StoreUnavailable("timeout"),
        ):
            with self.assertRaises(StoreUnavailable):
                settle_table(table_number=5, request=build_settlement_request(mode="full"), method="cash")

        order.refresh_from_db()
        self.assertEqual(order.paid_amount, D("0.00"))
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertEqual(Payment.objects.count(), 0)

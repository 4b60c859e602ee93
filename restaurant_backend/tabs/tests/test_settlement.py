# tabs/tests/test_settlement.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from tabs.models import Order, OrderItem, Payment
from tabs.services.balance_service import OrderBalance
from tabs.services.exceptions import (
    AmountExceedsRemaining,
    InvalidSelection,
    NothingToSettle,
    SettlementValidationError,
)
from tabs.services.payment_applier import distribute_proportionally
from tabs.services.settlement_modes import build_settlement_request
from tabs.services.settlement_orchestrator import get_table_balance, settle_table
from tabs.tests.helpers import item_named, make_order

User = get_user_model()
D = Decimal


def _settle(table_number, *, method="cash", user=None, **kwargs):
    return settle_table(
        table_number=table_number,
        request=build_settlement_request(**kwargs),
        method=method,
        user=user,
    )


# ======================================================
# END-TO-END SCENARIOS
# ======================================================


class SettlementScenarioTests(TestCase):
    def setUp(self):
        self.cashier = User.objects.create_user(
            username="cashier",
            email="cashier@example.com",
            password="pass12345",
        )
        self.order = make_order(table_number=5, items=[("Steak", "20.00"), ("Wine", "15.00")])

    def test_by_value_for_full_remaining_closes_table(self):
        result = _settle(5, mode="by_value", amount="35.00", user=self.cashier)

        self.assertTrue(result.closed)
        self.assertEqual(result.balance.total_remaining, D("0.00"))
        self.assertEqual(result.payment.amount, D("35.00"))
        self.assertEqual(result.payment.method, Payment.METHOD_CASH)
        self.assertEqual(result.payment.mode, Payment.MODE_BY_VALUE)
        self.assertEqual(result.payment.created_by, self.cashier)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)
        self.assertEqual(self.order.paid_amount, D("35.00"))
        self.assertEqual(self.order.notes, "Paid via cash")

    def test_by_people_two_shares_close_table(self):
        first = _settle(5, mode="by_people", people=2)

        self.assertFalse(first.closed)
        self.assertEqual(first.payment.amount, D("17.50"))
        self.assertEqual(first.resolved.per_person_share, D("17.50"))
        self.assertEqual(first.balance.total_remaining, D("17.50"))
        self.assertEqual(first.resolved.paid_people_count, 1)

        second = _settle(5, mode="by_people", people=2)

        self.assertTrue(second.closed)
        self.assertEqual(second.resolved.paid_people_count, 2)
        self.assertEqual(second.balance.total_remaining, D("0.00"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)

    def test_by_items_marks_only_selected_item(self):
        steak = item_named(self.order, "Steak")

        result = _settle(5, mode="by_items", item_ids=[steak.id], method="card")

        self.assertFalse(result.closed)
        self.assertEqual(result.payment.amount, D("20.00"))
        self.assertEqual(result.payment.items_count, 1)
        self.assertEqual(result.balance.total_remaining, D("15.00"))

        steak.refresh_from_db()
        self.assertTrue(steak.is_paid)
        self.assertEqual(steak.payment_method, Payment.METHOD_CARD)
        self.assertIsNotNone(steak.paid_at)
        self.assertEqual(steak.settled_by_payment_id, result.payment.id)
        self.assertFalse(item_named(self.order, "Wine").is_paid)

        self.order.refresh_from_db()
        self.assertEqual(self.order.paid_amount, D("0.00"))
        self.assertEqual(self.order.status, Order.STATUS_PENDING)

    def test_by_value_above_remaining_mutates_nothing(self):
        with self.assertRaises(AmountExceedsRemaining):
            _settle(5, mode="by_value", amount="40.00")

        self.assertEqual(Payment.objects.count(), 0)
        self.order.refresh_from_db()
        self.assertEqual(self.order.paid_amount, D("0.00"))
        self.assertEqual(self.order.status, Order.STATUS_PENDING)

    def test_full_payment_over_two_orders(self):
        make_order(table_number=9, items=[("A1", "18.00"), ("A2", "12.00")])
        make_order(table_number=9, items=[("B1", "20.00")])

        result = _settle(9, mode="full", method="pix")

        self.assertTrue(result.closed)
        self.assertEqual(result.payment.amount, D("50.00"))

        a, b = Order.objects.filter(table_number=9).order_by("created_at")
        self.assertEqual(a.paid_amount, D("30.00"))
        self.assertEqual(b.paid_amount, D("20.00"))
        self.assertEqual(a.status, Order.STATUS_PAID)
        self.assertEqual(b.status, Order.STATUS_PAID)

    def test_paid_item_cannot_be_selected_again(self):
        steak = item_named(self.order, "Steak")
        _settle(5, mode="by_items", item_ids=[steak.id])

        with self.assertRaises(InvalidSelection):
            _settle(5, mode="by_items", item_ids=[steak.id])

        self.assertEqual(Payment.objects.filter(mode=Payment.MODE_BY_ITEMS).count(), 1)

    def test_item_of_another_table_is_invalid(self):
        other = make_order(table_number=6, items=[("Elsewhere", "5.00")])

        with self.assertRaises(InvalidSelection):
            _settle(5, mode="by_items", item_ids=[item_named(other, "Elsewhere").id])

    def test_settled_table_has_nothing_to_settle(self):
        _settle(5, mode="full")

        with self.assertRaises(NothingToSettle):
            _settle(5, mode="full")

    def test_empty_table_has_nothing_to_settle(self):
        with self.assertRaises(NothingToSettle):
            _settle(77, mode="full")

    def test_invalid_method_and_table_rejected_before_writes(self):
        with self.assertRaises(SettlementValidationError):
            _settle(5, mode="full", method="cheque")
        with self.assertRaises(SettlementValidationError):
            _settle(0, mode="full")

        self.assertEqual(Payment.objects.count(), 0)

    def test_anonymous_payment_has_no_cashier(self):
        result = _settle(5, mode="by_value", amount="5.00")

        self.assertIsNone(result.payment.created_by)
        self.assertEqual(result.payment.table_number, 5)
        self.assertEqual(result.payment.order_id, self.order.id)


# ======================================================
# MIXED MODES / CONSERVATION
# ======================================================


class MixedSettlementTests(TestCase):
    def test_items_then_full_never_double_counts(self):
        a = make_order(table_number=4, items=[("Steak", "20.00"), ("Salad", "10.00")])
        b = make_order(table_number=4, items=[("Dessert", "20.00")])

        _settle(4, mode="by_items", item_ids=[item_named(a, "Steak").id])
        result = _settle(4, mode="full")

        self.assertTrue(result.closed)
        self.assertEqual(result.payment.amount, D("30.00"))
        self.assertEqual(result.balance.total_paid, D("50.00"))

        a.refresh_from_db()
        b.refresh_from_db()
        self.assertEqual(a.paid_amount, D("10.00"))
        self.assertEqual(b.paid_amount, D("20.00"))

    def test_conservation_over_a_sequence(self):
        a = make_order(table_number=2, items=[("Burger", "23.90"), ("Fries", "9.45"), ("Beer", "11.00", 2)])
        make_order(table_number=2, items=[("Coffee", "4.35", 3)])

        original = get_table_balance(table_number=2).total_original
        self.assertEqual(original, D("68.40"))

        steps = [
            {"mode": "by_items", "item_ids": [item_named(a, "Fries").id]},
            {"mode": "by_value", "amount": "7.77"},
            {"mode": "by_people", "people": 3},
            {"mode": "by_value", "amount": "0.05"},
            {"mode": "full"},
        ]

        last_paid = D("0.00")
        for step in steps:
            result = _settle(2, **step)
            self.assertEqual(result.balance.total_original, original)
            self.assertGreaterEqual(result.balance.total_paid, last_paid)
            self.assertLessEqual(result.balance.total_paid, original)
            last_paid = result.balance.total_paid

        self.assertTrue(result.closed)
        collected = sum((p.amount for p in Payment.objects.filter(table_number=2)), D("0.00"))
        self.assertEqual(collected, original)

        proportional = sum(
            (o.paid_amount for o in Order.objects.filter(table_number=2)),
            D("0.00"),
        )
        by_items = sum(
            (i.subtotal for i in OrderItem.objects.filter(order__table_number=2, is_paid=True)),
            D("0.00"),
        )
        self.assertEqual(proportional + by_items, collected)


# ======================================================
# CLOSURE TOLERANCE
# ======================================================


class ClosureToleranceTests(TestCase):
    def test_remaining_one_cent_closes(self):
        order = make_order(table_number=1, items=[("A", "10.00")])

        result = _settle(1, mode="by_value", amount="9.99")

        self.assertTrue(result.closed)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PAID)

    def test_remaining_two_cents_stays_open(self):
        order = make_order(table_number=1, items=[("A", "10.00")])

        result = _settle(1, mode="by_value", amount="9.98")

        self.assertFalse(result.closed)
        self.assertEqual(result.balance.total_remaining, D("0.02"))
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)

    def test_three_way_split_closes_on_rounding_cent(self):
        order = make_order(table_number=1, items=[("A", "100.00")])

        results = [_settle(1, mode="by_people", people=3) for _ in range(3)]

        self.assertEqual([r.payment.amount for r in results], [D("33.33")] * 3)
        self.assertEqual([r.closed for r in results], [False, False, True])
        self.assertEqual(results[-1].resolved.paid_people_count, 3)
        self.assertEqual(results[-1].balance.total_remaining, D("0.01"))
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PAID)

    @override_settings(SETTLEMENT_TOLERANCE=Decimal("0.05"))
    def test_tolerance_is_configurable(self):
        make_order(table_number=1, items=[("A", "10.00")])

        result = _settle(1, mode="by_value", amount="9.95")

        self.assertTrue(result.closed)

    def test_existing_notes_are_kept_on_close(self):
        order = make_order(table_number=1, items=[("A", "10.00")])
        Order.objects.filter(pk=order.pk).update(notes="VIP")

        _settle(1, mode="full", method="card")

        order.refresh_from_db()
        self.assertEqual(order.notes, "VIP")


# ======================================================
# APPEND-ONLY PAYMENTS
# ======================================================


class PaymentImmutabilityTests(TestCase):
    def test_payment_cannot_be_changed_or_deleted(self):
        make_order(table_number=1, items=[("A", "10.00")])
        payment = _settle(1, mode="by_value", amount="4.00").payment

        payment.amount = D("1.00")
        with self.assertRaises(ValueError):
            payment.save()
        with self.assertRaises(ValueError):
            payment.delete()

        payment.refresh_from_db()
        self.assertEqual(payment.amount, D("4.00"))


# ======================================================
# PROPORTIONAL DISTRIBUTION
# ======================================================


def _ob(total, paid="0.00", paid_items="0.00"):
    return OrderBalance(
        order_id=uuid.uuid4(),
        order_number=None,
        status=Order.STATUS_PENDING,
        total=D(total),
        paid_amount=D(paid),
        items_total=D(total),
        paid_items_total=D(paid_items),
    )


class ProportionalDistributionTests(TestCase):
    def test_split_by_order_totals(self):
        a, b = _ob("30.00"), _ob("20.00")

        parts = distribute_proportionally(orders=[a, b], amount=D("25.00"))

        self.assertEqual(parts, [(a.order_id, D("15.00")), (b.order_id, D("10.00"))])

    def test_leftover_cent_goes_to_last_order(self):
        orders = [_ob("10.00"), _ob("10.00"), _ob("10.00")]

        parts = distribute_proportionally(orders=orders, amount=D("10.00"))

        self.assertEqual([p[1] for p in parts], [D("3.33"), D("3.33"), D("3.34")])
        self.assertEqual(sum((p[1] for p in parts), D("0.00")), D("10.00"))

    def test_share_capped_by_outstanding(self):
        a = _ob("30.00", paid_items="20.00")
        b = _ob("20.00")

        parts = dict(distribute_proportionally(orders=[a, b], amount=D("30.00")))

        self.assertEqual(parts[a.order_id], D("10.00"))
        self.assertEqual(parts[b.order_id], D("20.00"))

    def test_amount_sum_is_exact_for_awkward_totals(self):
        orders = [_ob("7.33"), _ob("11.11"), _ob("0.99")]

        parts = distribute_proportionally(orders=orders, amount=D("13.57"))

        self.assertEqual(sum((p[1] for p in parts), D("0.00")), D("13.57"))
        for order, (_, inc) in zip(orders, parts):
            self.assertLessEqual(inc, order.outstanding)

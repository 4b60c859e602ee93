# tabs/tests/helpers.py

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from tabs.models import Order, OrderItem

_BASE = timezone.now() - timedelta(hours=1)
_seq = {"n": 0}


def _tick():
    _seq["n"] += 1
    return _BASE + timedelta(seconds=_seq["n"])


def make_order(*, table_number=5, items=(), status=Order.STATUS_PENDING, paid_amount="0.00", mode=Order.MODE_TABLE):
    """
    Create an order with its items; order.total = Σ item subtotals.

    items: iterable of (product_name, unit_price) or (product_name, unit_price, quantity).
    Creation timestamps increase strictly so item ordering is deterministic.
    """
    order = Order.objects.create(
        table_number=table_number,
        mode=mode,
        status=status,
        paid_amount=Decimal(paid_amount),
        created_at=_tick(),
    )

    total = Decimal("0.00")
    for row in items:
        name, price = row[0], Decimal(str(row[1]))
        qty = row[2] if len(row) > 2 else 1
        item = OrderItem.objects.create(
            order=order,
            product_id=uuid.uuid4(),
            product_name=name,
            quantity=qty,
            unit_price=price,
            created_at=_tick(),
        )
        total += item.subtotal

    Order.objects.filter(pk=order.pk).update(total=total)
    order.refresh_from_db()
    return order


def item_named(order, name) -> OrderItem:
    return order.items.get(product_name=name)

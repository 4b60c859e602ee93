# tabs/models/order_item.py

"""
ORDER ITEM

One line of an Order, individually payable in "by items" mode.

Notes:
- subtotal is fixed at creation (quantity x unit_price)
- is_paid / paid_at / payment_method / settled_by_payment are written
  only by the settlement engine, through a conditional update that
  requires is_paid=False
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone

from .order import Order


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product_id = models.UUIDField(help_text="Menu product reference")
    product_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Product name snapshot for receipts and the cashier screen.",
    )

    quantity = models.PositiveIntegerField(default=1)

    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )

    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )

    notes = models.CharField(max_length=255, blank=True, default="")

    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=16, null=True, blank=True)

    settled_by_payment = models.ForeignKey(
        "tabs.Payment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="settled_items",
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "is_paid"], name="tabs_item_order_paid_idx"),
        ]

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.subtotal = Decimal(self.unit_price) * Decimal(int(self.quantity or 0))
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.quantity}x {self.product_name or self.product_id}"

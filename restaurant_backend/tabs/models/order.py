# tabs/models/order.py

import uuid
from decimal import Decimal

from django.db import models, transaction
from django.utils import timezone


class Order(models.Model):
    """
    One check opened for a table (or for the counter).

    GUARANTEES:
    - paid_amount only ever grows, and never exceeds total
    - paid_amount is written by the settlement engine only
    - pending/ready transitions belong to the kitchen workflow;
      settlement only moves open orders to paid

    A table may hold several open orders at once (separate rounds).
    """

    STATUS_PENDING = "pending"
    STATUS_READY = "ready"
    STATUS_PAID = "paid"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_READY, "Ready"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    OPEN_STATUSES = (STATUS_PENDING, STATUS_READY)

    MODE_TABLE = "table"
    MODE_COUNTER = "counter"

    MODE_CHOICES = [
        (MODE_TABLE, "Table"),
        (MODE_COUNTER, "Counter"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_number = models.PositiveIntegerField(
        blank=True,
        db_index=True,
        help_text="Sequential, human-facing order number",
    )

    table_number = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Null for counter / take-away orders",
    )

    mode = models.CharField(
        max_length=16,
        choices=MODE_CHOICES,
        default=MODE_TABLE,
    )

    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of item subtotals when the order was placed (may be stale).",
    )

    paid_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Cumulative amount settled through proportional modes.",
    )

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )

    notes = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "order_number"]
        indexes = [
            models.Index(fields=["table_number", "status"], name="tabs_order_table_status_idx"),
            models.Index(fields=["status"], name="tabs_order_status_idx"),
        ]

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    def save(self, *args, **kwargs):
        if self.mode == self.MODE_COUNTER:
            self.table_number = None

        if self.order_number:
            return super().save(*args, **kwargs)

        # Numbering holds a row lock on the current highest order until the
        # insert commits. The very first order has no row to lock, so two
        # concurrent first orders can still share number 1.
        with transaction.atomic():
            last = (
                Order.objects.select_for_update()
                .order_by("-order_number")
                .values_list("order_number", flat=True)
                .first()
            )
            self.order_number = (last or 0) + 1
            super().save(*args, **kwargs)

    def __str__(self):
        where = f"table {self.table_number}" if self.table_number else "counter"
        return f"#{self.order_number} | {where} | {self.status}"

# tabs/models/payment.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class Payment(models.Model):
    """
    Immutable audit record of one settlement action.

    RULES:
    - Append-only: never updated, never deleted.
    - amount is table-scoped; order is one representative open order
      of the table, kept for traceability only.
    - amount > 0 and <= the remaining balance observed right before it
      was applied (enforced by the settlement engine).
    """

    METHOD_CASH = "cash"
    METHOD_CARD = "card"
    METHOD_PIX = "pix"

    METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CARD, "Card"),
        (METHOD_PIX, "PIX"),
    ]

    MODE_FULL = "full"
    MODE_BY_ITEMS = "by_items"
    MODE_BY_PEOPLE = "by_people"
    MODE_BY_VALUE = "by_value"

    MODE_CHOICES = [
        (MODE_FULL, "Full"),
        (MODE_BY_ITEMS, "By items"),
        (MODE_BY_PEOPLE, "By people"),
        (MODE_BY_VALUE, "By value"),
    ]

    PROPORTIONAL_MODES = (MODE_FULL, MODE_BY_PEOPLE, MODE_BY_VALUE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    table_number = models.PositiveSmallIntegerField(db_index=True)

    order = models.ForeignKey(
        "tabs.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    method = models.CharField(max_length=16, choices=METHOD_CHOICES)
    mode = models.CharField(max_length=16, choices=MODE_CHOICES)
    items_count = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tab_payments",
        help_text="Cashier who confirmed the payment",
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["method"], name="tabs_payment_method_idx"),
            models.Index(fields=["table_number", "created_at"], name="tabs_payment_table_ts_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Payment records are append-only and cannot be changed.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Payment records are append-only and cannot be deleted.")

    def __str__(self):
        return f"table {self.table_number} | {self.mode} | {self.method} | {self.amount}"

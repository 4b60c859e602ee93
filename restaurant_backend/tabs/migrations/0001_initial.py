import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_number", models.PositiveIntegerField(blank=True, db_index=True, help_text="Sequential, human-facing order number")),
                ("table_number", models.PositiveSmallIntegerField(blank=True, help_text="Null for counter / take-away orders", null=True)),
                ("mode", models.CharField(choices=[("table", "Table"), ("counter", "Counter")], default="table", max_length=16)),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="Sum of item subtotals when the order was placed (may be stale).", max_digits=12)),
                ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="Cumulative amount settled through proportional modes.", max_digits=12)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("ready", "Ready"), ("paid", "Paid"), ("cancelled", "Cancelled")], default="pending", max_length=16)),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["created_at", "order_number"],
                "indexes": [
                    models.Index(fields=["table_number", "status"], name="tabs_order_table_status_idx"),
                    models.Index(fields=["status"], name="tabs_order_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("table_number", models.PositiveSmallIntegerField(db_index=True)),
                ("amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("method", models.CharField(choices=[("cash", "Cash"), ("card", "Card"), ("pix", "PIX")], max_length=16)),
                ("mode", models.CharField(choices=[("full", "Full"), ("by_items", "By items"), ("by_people", "By people"), ("by_value", "By value")], max_length=16)),
                ("items_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Cashier who confirmed the payment",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="tab_payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="tabs.order",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["method"], name="tabs_payment_method_idx"),
                    models.Index(fields=["table_number", "created_at"], name="tabs_payment_table_ts_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("product_id", models.UUIDField(help_text="Menu product reference")),
                ("product_name", models.CharField(blank=True, default="", help_text="Product name snapshot for receipts and the cashier screen.", max_length=255)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("subtotal", models.DecimalField(decimal_places=2, editable=False, max_digits=12)),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("is_paid", models.BooleanField(default=False)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("payment_method", models.CharField(blank=True, max_length=16, null=True)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="tabs.order",
                    ),
                ),
                (
                    "settled_by_payment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settled_items",
                        to="tabs.payment",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["order", "is_paid"], name="tabs_item_order_paid_idx"),
                ],
            },
        ),
    ]

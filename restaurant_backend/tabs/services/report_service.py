# tabs/services/report_service.py

"""
TABS REPORTS (READ-ONLY)

- payment_method_stats: totals and counts per payment method for one day
- current_status: what is open right now across the floor

Definitions:
- A payment belongs to the day of its created_at (server timezone).
- Open amount = Σ over open orders of (total - paid_amount - paid items).
"""

from __future__ import annotations

from datetime import date as date_cls
from datetime import datetime, timedelta

from django.db.models import Count, Q, Sum
from django.utils import timezone

from tabs.models import Order, OrderItem, Payment
from tabs.services.money import ZERO, money


def parse_report_date(date_str: str | None) -> date_cls | None:
    """
    Accepts YYYY-MM-DD. Defaults to today (server timezone).
    Returns None for a malformed date.
    """
    if not date_str:
        return timezone.localdate()
    try:
        return datetime.strptime(str(date_str).strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def _date_bounds(day: date_cls):
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime(day.year, day.month, day.day), tz)
    return start, start + timedelta(days=1)


def payment_method_stats(*, day: date_cls) -> list[dict]:
    start, end = _date_bounds(day)

    rows = (
        Payment.objects.filter(created_at__gte=start, created_at__lt=end)
        .values("method")
        .annotate(total=Sum("amount"), count=Count("id"))
        .order_by("method")
    )

    return [
        {
            "method": row["method"],
            "total": money(row["total"]),
            "count": int(row["count"] or 0),
        }
        for row in rows
    ]


def current_status() -> dict:
    open_orders = list(
        Order.objects.filter(status__in=Order.OPEN_STATUSES)
        .annotate(
            paid_items_total=Sum("items__subtotal", filter=Q(items__is_paid=True)),
        )
        .order_by("created_at")
    )

    active_tables = sorted({o.table_number for o in open_orders if o.table_number is not None})

    open_amount = ZERO
    for o in open_orders:
        owed = money(o.total) - money(o.paid_amount) - money(o.paid_items_total)
        open_amount += max(ZERO, owed)

    return {
        "active_tables": active_tables,
        "pending_orders": sum(1 for o in open_orders if o.status == Order.STATUS_PENDING),
        "ready_orders": sum(1 for o in open_orders if o.status == Order.STATUS_READY),
        "open_amount": open_amount,
        "unpaid_items": OrderItem.objects.filter(
            order__status__in=Order.OPEN_STATUSES,
            is_paid=False,
        ).count(),
    }

# tabs/services/ledger_store.py

"""
LEDGER STORE (READ/WRITE CONTRACT)

The only place the settlement engine (settlement, closure, item
removal, reconciliation) touches the database. Read-only reports
query the ORM directly.

Reads:
- get_order / get_item (single row, optionally locked)
- list_open_table_numbers
- list_open_orders_for_table
- list_items_for_orders
- list_payments_for_orders

Writes:
- update_order           (paid_amount increment is guarded by paid_amount <= total)
- update_order_item      (compare-and-set: only applies while is_paid = False)
- delete_unpaid_item     (only applies while is_paid = False)
- insert_payment         (append-only)

RULES:
- Every read goes to the database; nothing is cached between calls.
- Database connectivity failures and timeouts surface as StoreUnavailable.
- atomic() opens one transaction and, on PostgreSQL, bounds every
  statement in it with SETTLEMENT_STORE_TIMEOUT_MS.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import InterfaceError, OperationalError, connection, transaction
from django.db.models import F
from django.utils import timezone

from tabs.models import Order, OrderItem, Payment
from tabs.services.exceptions import StoreUnavailable

logger = logging.getLogger("settlement")

HALF_CENT = Decimal("0.005")


def _store_call(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error(
                "Ledger store call failed",
                extra={"operation": fn.__name__, "error": str(exc)},
            )
            raise StoreUnavailable(f"Ledger store unavailable during {fn.__name__}: {exc}") from exc

    return wrapper


class LedgerStore:
    """
    ORM-backed ledger store.

    timeout_ms=None uses settings.SETTLEMENT_STORE_TIMEOUT_MS.
    """

    def __init__(self, *, timeout_ms: int | None = None):
        if timeout_ms is None:
            timeout_ms = getattr(settings, "SETTLEMENT_STORE_TIMEOUT_MS", 5000)
        self.timeout_ms = int(timeout_ms or 0)

    # --------------------------------------------------
    # TRANSACTIONS
    # --------------------------------------------------

    @contextmanager
    def atomic(self):
        try:
            with transaction.atomic():
                self._apply_timeout()
                yield self
        except (OperationalError, InterfaceError) as exc:
            logger.error("Ledger store transaction failed", extra={"error": str(exc)})
            raise StoreUnavailable(f"Ledger store unavailable: {exc}") from exc

    def _apply_timeout(self):
        if self.timeout_ms <= 0 or connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute("SET LOCAL statement_timeout = %s", [self.timeout_ms])

    # --------------------------------------------------
    # READS
    # --------------------------------------------------

    @_store_call
    def get_order(self, order_id, *, lock: bool = False) -> Order | None:
        qs = Order.objects.filter(pk=order_id)
        if lock:
            qs = qs.select_for_update()
        return qs.first()

    @_store_call
    def get_item(self, item_id, *, lock: bool = False) -> OrderItem | None:
        """Returns None for unknown or malformed ids."""
        qs = OrderItem.objects.all()
        if lock:
            qs = qs.select_for_update()
        try:
            return qs.get(pk=item_id)
        except (OrderItem.DoesNotExist, ValidationError, ValueError):
            return None

    @_store_call
    def list_open_table_numbers(self) -> list[int]:
        return sorted(
            set(
                Order.objects.filter(
                    status__in=Order.OPEN_STATUSES,
                    table_number__isnull=False,
                ).values_list("table_number", flat=True)
            )
        )

    @_store_call
    def list_open_orders_for_table(self, table_number: int, *, lock: bool = False) -> list[Order]:
        qs = Order.objects.filter(
            table_number=table_number,
            status__in=Order.OPEN_STATUSES,
        ).order_by("created_at", "order_number")

        if lock:
            qs = qs.select_for_update()

        return list(qs)

    @_store_call
    def list_items_for_orders(self, order_ids) -> list[OrderItem]:
        order_ids = list(order_ids)
        if not order_ids:
            return []
        return list(
            OrderItem.objects.filter(order_id__in=order_ids).order_by("created_at", "id")
        )

    @_store_call
    def list_payments_for_orders(self, order_ids) -> list[Payment]:
        order_ids = list(order_ids)
        if not order_ids:
            return []
        return list(
            Payment.objects.filter(order_id__in=order_ids).order_by("created_at", "id")
        )

    # --------------------------------------------------
    # WRITES
    # --------------------------------------------------

    @_store_call
    def update_order(
        self,
        order_id,
        *,
        paid_amount_increment: Decimal | None = None,
        status: str | None = None,
        notes: str | None = None,
        total: Decimal | None = None,
    ) -> bool:
        """
        Returns False when the guarded update matched no row
        (the increment would push paid_amount above total).
        """
        changes = {"updated_at": timezone.now()}
        qs = Order.objects.filter(pk=order_id)

        if paid_amount_increment is not None:
            # 2dp values; the half cent absorbs REAL affinity on sqlite.
            qs = qs.filter(paid_amount__lte=F("total") - paid_amount_increment + HALF_CENT)
            changes["paid_amount"] = F("paid_amount") + paid_amount_increment
        if status is not None:
            changes["status"] = status
        if notes is not None:
            changes["notes"] = notes
        if total is not None:
            changes["total"] = total

        return qs.update(**changes) == 1

    @_store_call
    def update_order_item(self, item_id, *, paid_at, payment_method: str, payment: Payment) -> bool:
        """
        Compare-and-set: marks the item paid only while it is still unpaid.
        Returns False if someone else settled it first.
        """
        updated = OrderItem.objects.filter(pk=item_id, is_paid=False).update(
            is_paid=True,
            paid_at=paid_at,
            payment_method=payment_method,
            settled_by_payment=payment,
        )
        return updated == 1

    @_store_call
    def delete_unpaid_item(self, item_id) -> bool:
        deleted, _ = OrderItem.objects.filter(pk=item_id, is_paid=False).delete()
        return deleted == 1

    @_store_call
    def insert_payment(
        self,
        *,
        table_number: int,
        order_id,
        amount: Decimal,
        method: str,
        mode: str,
        items_count: int = 0,
        created_by=None,
    ) -> Payment:
        return Payment.objects.create(
            table_number=table_number,
            order_id=order_id,
            amount=amount,
            method=method,
            mode=mode,
            items_count=items_count,
            created_by=created_by,
        )

# tabs/services/settlement_orchestrator.py

"""
SETTLEMENT ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- One entry point for a cashier's "confirm payment" action on a table.

FLOW:
1) Load + aggregate the table balance (fresh read)
2) Resolve the settlement request (validation errors stop here,
   before any write)
3) In ONE transaction:
   a) Payment Applier: reload under lock, re-validate, insert the
      Payment, mutate items / order paid amounts
   b) Closure Detector: reload, re-aggregate, close the tab if the
      remaining balance is within tolerance
4) Return the payment, the fresh balance and the closure flag
   (by people: paid_people_count reflects this payment)

Hard rules:
- Money values are computed server-side; the client never sends totals.
- The engine never retries. StoreUnavailable goes back to the caller.
- Any error inside step 3 rolls back the whole action, Payment included.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from tabs.models import Payment
from tabs.services.balance_service import TableBalance, load_table_balance
from tabs.services.closure_service import detect_closure
from tabs.services.exceptions import InconsistentState, SettlementValidationError
from tabs.services.ledger_store import LedgerStore
from tabs.services.payment_applier import apply_payment, normalize_method
from tabs.services.settlement_modes import SettlementRequest
from tabs.services.settlement_resolver import (
    ResolvedSettlement,
    paid_people_count,
    resolve_settlement,
)

logger = logging.getLogger("settlement")


@dataclass(frozen=True)
class SettlementResult:
    payment: Payment
    resolved: ResolvedSettlement
    balance: TableBalance
    closed: bool


def get_table_balance(*, table_number: int, store: LedgerStore | None = None) -> TableBalance:
    store = store or LedgerStore()
    return load_table_balance(store=store, table_number=_table(table_number))


def preview_settlement(
    *,
    table_number: int,
    request: SettlementRequest,
    store: LedgerStore | None = None,
) -> tuple[TableBalance, ResolvedSettlement]:
    """Resolve without writing anything (what the cashier sees before confirming)."""
    balance = get_table_balance(table_number=table_number, store=store)
    return balance, resolve_settlement(balance=balance, request=request)


def settle_table(
    *,
    table_number: int,
    request: SettlementRequest,
    method: str,
    user=None,
    store: LedgerStore | None = None,
) -> SettlementResult:
    store = store or LedgerStore()
    table_number = _table(table_number)
    method = normalize_method(method)

    try:
        balance, resolved = preview_settlement(
            table_number=table_number,
            request=request,
            store=store,
        )
    except SettlementValidationError as exc:
        logger.warning(
            "Settlement rejected",
            extra={"table_number": table_number, "mode": request.mode, "reason": str(exc)},
        )
        raise

    try:
        with store.atomic():
            payment = apply_payment(
                store=store,
                table_number=table_number,
                resolved=resolved,
                method=method,
                user=user,
            )
            closure = detect_closure(store=store, table_number=table_number, method=method)
    except InconsistentState:
        logger.exception(
            "Settlement aborted: inconsistent tab state",
            extra={"table_number": table_number, "mode": resolved.mode},
        )
        raise

    if resolved.per_person_share is not None:
        # Shares covered once this payment is counted.
        resolved = replace(
            resolved,
            paid_people_count=paid_people_count(
                total_paid=closure.balance.total_paid,
                share=resolved.per_person_share,
            ),
        )

    return SettlementResult(
        payment=payment,
        resolved=resolved,
        balance=closure.balance,
        closed=closure.closed,
    )


def _table(table_number) -> int:
    if isinstance(table_number, bool):
        raise SettlementValidationError("Table number must be a positive integer.")
    try:
        n = int(table_number)
    except (TypeError, ValueError) as exc:
        raise SettlementValidationError("Table number must be a positive integer.") from exc
    if n < 1:
        raise SettlementValidationError("Table number must be a positive integer.")
    return n

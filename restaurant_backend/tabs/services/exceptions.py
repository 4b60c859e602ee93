# tabs/services/exceptions.py

"""
SETTLEMENT SERVICE ERRORS

Centralized domain errors for the settlement engine.

Recovery contract:
- Validation errors: raised before any write; the cashier corrects input.
- ItemAlreadySettled: another terminal got there first; re-read the tab.
- StoreUnavailable: transient; the caller may retry with backoff.
  The engine itself never retries.
- InconsistentState: always a bug; the operation is rolled back and the
  tab must be re-aggregated from source records before settling again.
"""


class SettlementError(Exception):
    """Base exception for all settlement failures."""

    code = "settlement_error"
    retryable = False


class SettlementValidationError(SettlementError):
    """Input rejected before any mutation."""

    code = "invalid_request"


class NothingToSettle(SettlementValidationError):
    """Remaining balance is already within tolerance."""

    code = "nothing_to_settle"


class InvalidSelection(SettlementValidationError):
    """Empty item selection, or items that are paid or belong elsewhere."""

    code = "invalid_selection"


class AmountExceedsRemaining(SettlementValidationError):
    """Requested amount is larger than the remaining balance."""

    code = "amount_exceeds_remaining"


class ItemAlreadySettled(SettlementError):
    """An item was marked paid by a concurrent settlement."""

    code = "item_already_settled"

    def __init__(self, message: str, item_ids=()):
        super().__init__(message)
        self.item_ids = tuple(item_ids)


class StoreUnavailable(SettlementError):
    """Transient storage failure or timeout."""

    code = "store_unavailable"
    retryable = True


class InconsistentState(SettlementError):
    """A balance invariant was violated. Never expected in normal operation."""

    code = "inconsistent_state"

# tabs/views/errors.py

from rest_framework import status
from rest_framework.response import Response

from tabs.services.exceptions import (
    InconsistentState,
    ItemAlreadySettled,
    SettlementError,
    SettlementValidationError,
    StoreUnavailable,
)


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int, **details):
    """
    Canonical API error response.
    """
    body = {"code": code, "message": message}
    body.update(details)
    return Response({"error": body}, status=http_status)


def settlement_error_response(exc: SettlementError):
    """
    Map a settlement error to its HTTP status.

    - validation errors            -> 400
    - item already settled         -> 409 (re-read the tab)
    - store unavailable            -> 503 (retryable)
    - inconsistent state / other   -> 500
    """
    if isinstance(exc, SettlementValidationError):
        return error_response(
            code=exc.code,
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, ItemAlreadySettled):
        return error_response(
            code=exc.code,
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
            item_ids=[str(i) for i in exc.item_ids],
        )

    if isinstance(exc, StoreUnavailable):
        return error_response(
            code=exc.code,
            message="Storage is temporarily unavailable. Try again.",
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
            retryable=True,
        )

    if isinstance(exc, InconsistentState):
        return error_response(
            code=exc.code,
            message="Tab state is inconsistent; the payment was not applied.",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return error_response(
        code=exc.code,
        message=str(exc),
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

# tabs/views/reports.py

"""
TABS REPORTS (READ-ONLY)

- GET /api/tabs/reports/payment-methods/?date=YYYY-MM-DD
- GET /api/tabs/reports/current-status/
"""

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from tabs.services.report_service import (
    current_status,
    parse_report_date,
    payment_method_stats,
)
from tabs.views.errors import error_response


def _money(x) -> str:
    """
    JSON-safe money string.
    """
    return f"{x:.2f}"


class PaymentMethodStatsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="date",
                type=OpenApiTypes.DATE,
                required=False,
                description="Report date in YYYY-MM-DD. Defaults to today (server timezone).",
            )
        ],
        description="Totals and counts per payment method for one day.",
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        day = parse_report_date(request.query_params.get("date"))
        if day is None:
            return error_response(
                code="invalid_request",
                message="Invalid date format. Use YYYY-MM-DD.",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        rows = payment_method_stats(day=day)
        return Response(
            {
                "date": day.isoformat(),
                "methods": [
                    {"method": r["method"], "total": _money(r["total"]), "count": r["count"]}
                    for r in rows
                ],
            }
        )


class CurrentStatusView(APIView):
    """
    What is open on the floor right now.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        description="Active tables, pending/ready order counts and open amount.",
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        snapshot = current_status()
        snapshot["open_amount"] = _money(snapshot["open_amount"])
        return Response(snapshot)

# tabs/views/settlement.py

"""
TABLE SETTLEMENT ENDPOINTS

- GET    /api/tabs/tables/<n>/balance/[?people=N]
- POST   /api/tabs/tables/<n>/settle/
- GET    /api/tabs/tables/<n>/payments/[?method=&mode=]
- DELETE /api/tabs/items/<uuid>/

Views stay thin: parse input, call one service, map errors.
"""

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from tabs.models import Order, Payment
from tabs.serializers import (
    OrderSerializer,
    PaymentSerializer,
    SettleInputSerializer,
    SettlementResultSerializer,
    TableBalanceSerializer,
)
from tabs.services.exceptions import SettlementError
from tabs.services.item_service import remove_order_item
from tabs.services.settlement_modes import build_settlement_request
from tabs.services.settlement_orchestrator import get_table_balance, settle_table
from tabs.services.settlement_resolver import paid_people_count, per_person_share
from tabs.views.errors import error_response, settlement_error_response


class TableBalanceView(APIView):
    """
    Current balance of a table (recomputed on every call).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="people",
                type=OpenApiTypes.INT,
                required=False,
                description="Split preview: number of people (>= 2).",
            )
        ],
        responses={200: TableBalanceSerializer},
        description="Aggregated balance, unpaid items and orders of a table.",
    )
    def get(self, request, table_number: int):
        try:
            balance = get_table_balance(table_number=table_number)
        except SettlementError as exc:
            return settlement_error_response(exc)

        data = dict(TableBalanceSerializer(balance).data)
        data["table_number"] = table_number

        people = request.query_params.get("people")
        if people:
            try:
                n = int(people)
                share = per_person_share(total_original=balance.total_original, people=n)
            except ValueError:
                return error_response(
                    code="invalid_request",
                    message="people must be a whole number >= 2.",
                    http_status=status.HTTP_400_BAD_REQUEST,
                )
            except SettlementError as exc:
                return settlement_error_response(exc)

            data["people"] = n
            data["per_person_share"] = f"{share:.2f}"
            data["paid_people_count"] = paid_people_count(total_paid=balance.total_paid, share=share)

        return Response(data)


class SettleTableView(APIView):
    """
    TABLE SETTLEMENT ENDPOINT (AUTHORITATIVE)

    GUARANTEES:
    - Amount owed is computed server-side
    - Payment + item/order updates + closure in one transaction
    - Concurrent by-items settlements of the same item: one wins,
      the other gets 409
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=SettleInputSerializer,
        responses={201: SettlementResultSerializer},
        description="Collect one payment for a table (full, by_items, by_people or by_value).",
    )
    def post(self, request, table_number: int):
        serializer = SettleInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            settlement = build_settlement_request(
                mode=data["mode"],
                item_ids=data.get("item_ids"),
                people=data.get("people"),
                amount=data.get("amount"),
            )
            result = settle_table(
                table_number=table_number,
                request=settlement,
                method=data["method"],
                user=request.user,
            )
        except SettlementError as exc:
            return settlement_error_response(exc)

        return Response(
            SettlementResultSerializer(result).data,
            status=status.HTTP_201_CREATED,
        )


class TablePaymentListView(generics.ListAPIView):
    """
    Payments collected on a table's open tab (read-only).
    """

    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["method", "mode"]

    def get_queryset(self):
        return (
            Payment.objects.filter(
                table_number=self.kwargs["table_number"],
                order__status__in=Order.OPEN_STATUSES,
            )
            .select_related("created_by")
            .order_by("created_at")
        )


class OrderItemDeleteView(APIView):
    """
    Remove one unpaid item from an open order.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=None,
        responses={200: OrderSerializer},
        description="Delete an unpaid item and decrement its order total.",
    )
    def delete(self, request, item_id):
        try:
            order = remove_order_item(item_id=item_id)
        except SettlementError as exc:
            return settlement_error_response(exc)

        order = Order.objects.prefetch_related("items").get(pk=order.pk)
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

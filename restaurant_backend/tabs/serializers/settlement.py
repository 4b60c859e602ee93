# tabs/serializers/settlement.py

from rest_framework import serializers

from tabs.models import Payment
from tabs.serializers.balance import TableBalanceSerializer
from tabs.serializers.payment import PaymentSerializer


class SettleInputSerializer(serializers.Serializer):
    """
    Explicit settlement input serializer.

    Documents ONLY what the client is allowed to send.

    MODE RULES:
    - full:       no extra fields
    - by_items:   item_ids (non-empty)
    - by_people:  people (>= 2)
    - by_value:   amount (> 0, <= remaining)

    Money owed is always computed server-side.
    """

    mode = serializers.ChoiceField(choices=Payment.MODE_CHOICES)
    method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES)
    item_ids = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        allow_empty=True,
        help_text="Unpaid item ids (by_items only).",
    )
    people = serializers.IntegerField(
        required=False,
        help_text="Number of people splitting the tab (by_people only).",
    )
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        help_text="Amount to collect (by_value only).",
    )


class SettlementResultSerializer(serializers.Serializer):
    payment = PaymentSerializer(read_only=True)
    balance = TableBalanceSerializer(read_only=True)
    closed = serializers.BooleanField(read_only=True)
    amount = serializers.DecimalField(
        source="resolved.amount", max_digits=12, decimal_places=2, read_only=True
    )
    per_person_share = serializers.DecimalField(
        source="resolved.per_person_share",
        max_digits=12,
        decimal_places=2,
        read_only=True,
        allow_null=True,
    )
    paid_people_count = serializers.IntegerField(
        source="resolved.paid_people_count", read_only=True, allow_null=True
    )

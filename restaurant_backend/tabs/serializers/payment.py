# tabs/serializers/payment.py

from rest_framework import serializers

from tabs.models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """
    Settlement payment (read-only, append-only audit record).
    """

    settled_item_ids = serializers.SerializerMethodField()
    created_by_email = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "table_number",
            "order",
            "amount",
            "method",
            "mode",
            "items_count",
            "settled_item_ids",
            "created_by",
            "created_by_email",
            "created_at",
        ]
        read_only_fields = fields

    def get_settled_item_ids(self, obj):
        if obj.mode != Payment.MODE_BY_ITEMS:
            return []
        return [str(pk) for pk in obj.settled_items.values_list("id", flat=True)]

    def get_created_by_email(self, obj):
        user = getattr(obj, "created_by", None)
        return getattr(user, "email", None) or None

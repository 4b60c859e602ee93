# tabs/serializers/order.py

from rest_framework import serializers

from tabs.models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "unit_price",
            "subtotal",
            "notes",
            "is_paid",
            "paid_at",
            "payment_method",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    Order with its lines (read-only).
    Returned after an item is removed so the UI can redraw the order.
    """

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "table_number",
            "mode",
            "status",
            "total",
            "paid_amount",
            "notes",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

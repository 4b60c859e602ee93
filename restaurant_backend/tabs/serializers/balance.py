# tabs/serializers/balance.py

from rest_framework import serializers


class UnpaidItemSerializer(serializers.Serializer):
    """
    One unpaid line of a table's tab (read-only).
    Listed in creation order across all open orders.
    """

    item_id = serializers.UUIDField(read_only=True)
    order_id = serializers.UUIDField(read_only=True)
    order_number = serializers.IntegerField(read_only=True, allow_null=True)
    product_name = serializers.CharField(read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class OrderBalanceSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(read_only=True)
    order_number = serializers.IntegerField(read_only=True, allow_null=True)
    status = serializers.CharField(read_only=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    paid_items_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    outstanding = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class TableBalanceSerializer(serializers.Serializer):
    """
    Aggregated balance of a table (read-only).

    Money fields are recomputed from orders + items on every request.
    """

    total_original = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    paid_items_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    proportional_paid_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total_remaining = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    unpaid_items = UnpaidItemSerializer(many=True, read_only=True)
    orders = OrderBalanceSerializer(many=True, read_only=True)

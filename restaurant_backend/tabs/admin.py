# tabs/admin.py

from django.contrib import admin

from tabs.models import Order, OrderItem, Payment


# ======================================================
# ORDER ADMIN
# ======================================================


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = (
        "subtotal",
        "is_paid",
        "paid_at",
        "payment_method",
        "settled_by_payment",
        "created_at",
    )


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "table_number",
        "mode",
        "status",
        "total",
        "paid_amount",
        "created_at",
    )
    readonly_fields = (
        "order_number",
        "paid_amount",
        "created_at",
        "updated_at",
    )
    search_fields = ("order_number", "notes")
    list_filter = ("status", "mode", "created_at")
    inlines = [OrderItemInline]


# ======================================================
# PAYMENT ADMIN (APPEND-ONLY)
# ======================================================


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "table_number",
        "amount",
        "method",
        "mode",
        "items_count",
        "created_by",
        "created_at",
    )
    readonly_fields = (
        "table_number",
        "order",
        "amount",
        "method",
        "mode",
        "items_count",
        "created_by",
        "created_at",
    )
    list_filter = ("method", "mode", "created_at")
    search_fields = ("table_number",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

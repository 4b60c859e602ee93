# tabs/urls.py

"""
TABS API URLS

Mounted at /api/tabs/ via backend/urls.py.

Provides:
    GET    /api/tabs/tables/<n>/balance/
    POST   /api/tabs/tables/<n>/settle/
    GET    /api/tabs/tables/<n>/payments/
    DELETE /api/tabs/items/<uuid>/
    GET    /api/tabs/reports/payment-methods/?date=YYYY-MM-DD
    GET    /api/tabs/reports/current-status/
"""

from django.urls import path

from tabs.views.reports import CurrentStatusView, PaymentMethodStatsView
from tabs.views.settlement import (
    OrderItemDeleteView,
    SettleTableView,
    TableBalanceView,
    TablePaymentListView,
)

urlpatterns = [
    path("tables/<int:table_number>/balance/", TableBalanceView.as_view(), name="tabs-table-balance"),
    path("tables/<int:table_number>/settle/", SettleTableView.as_view(), name="tabs-table-settle"),
    path("tables/<int:table_number>/payments/", TablePaymentListView.as_view(), name="tabs-table-payments"),
    path("items/<uuid:item_id>/", OrderItemDeleteView.as_view(), name="tabs-item-delete"),
    path("reports/payment-methods/", PaymentMethodStatsView.as_view(), name="tabs-reports-payment-methods"),
    path("reports/current-status/", CurrentStatusView.as_view(), name="tabs-reports-current-status"),
]

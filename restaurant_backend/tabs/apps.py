# tabs/apps.py

"""
TABS APP CONFIG

Table tabs module:
- Orders, order items and payments for dine-in tables and the counter
- Settlement engine (full / by items / by people / by value)
- Reconciliation tooling
"""

from django.apps import AppConfig


class TabsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tabs"
    verbose_name = "Table Tabs & Settlement"

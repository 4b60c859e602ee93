# tabs/models/__init__.py

"""
TABS MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for tabs app models.
"""

from .order import Order
from .order_item import OrderItem
from .payment import Payment

__all__ = [
    "Order",
    "OrderItem",
    "Payment",
]

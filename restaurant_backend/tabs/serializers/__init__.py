from .balance import TableBalanceSerializer
from .order import OrderItemSerializer, OrderSerializer
from .payment import PaymentSerializer
from .settlement import SettleInputSerializer, SettlementResultSerializer

__all__ = [
    "OrderItemSerializer",
    "OrderSerializer",
    "PaymentSerializer",
    "SettleInputSerializer",
    "SettlementResultSerializer",
    "TableBalanceSerializer",
]

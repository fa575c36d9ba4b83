"""
Order Service Package

Order placement with atomic inventory reservation, cancellation with
stock restoration, and the order status lifecycle.
"""

from .models import Order, OrderStatus, OrderType, OrderResponse
from .order_service import OrderService

__version__ = "1.0.0"
__all__ = [
    "Order",
    "OrderStatus",
    "OrderType",
    "OrderResponse",
    "OrderService",
]

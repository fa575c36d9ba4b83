"""
Order Service Events Module

Exports all event-related functionality for order service
"""

from .models import (
    OrderCreatedEvent,
    OrderCanceledEvent,
    OrderStatusChangedEvent,
    LowStockEvent
)

from .publishers import (
    publish_order_created,
    publish_order_canceled,
    publish_order_status_changed,
    publish_low_stock
)

__all__ = [
    # Event Models
    "OrderCreatedEvent",
    "OrderCanceledEvent",
    "OrderStatusChangedEvent",
    "LowStockEvent",
    # Publishers
    "publish_order_created",
    "publish_order_canceled",
    "publish_order_status_changed",
    "publish_low_stock",
]

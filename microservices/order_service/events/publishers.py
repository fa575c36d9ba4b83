"""
Order Service Event Publishers

Functions to publish events from order service. All of them run after
the order's transaction has committed and never raise.
"""

import logging
from typing import List, Optional

from core.nats_client import Event, EventType, ServiceSource
from microservices.inventory_service.models import StockAdjustment
from ..models import Order, OrderStatus
from .models import (
    OrderCreatedEvent,
    OrderCanceledEvent,
    OrderStatusChangedEvent,
    LowStockEvent
)

logger = logging.getLogger(__name__)


async def _publish(event_bus, event: Event, label: str) -> bool:
    try:
        published = await event_bus.publish_event(event)
    except Exception as e:
        logger.error(f"Failed to publish {label} event: {e}")
        return False

    if published is False:
        logger.error(f"Event bus rejected {label} event {event.id}")
        return False
    return True


async def publish_order_created(event_bus, order: Order) -> bool:
    """Publish order.created event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.created event")
        return False

    event_data = OrderCreatedEvent(
        order_id=order.order_id,
        order_number=order.order_number,
        user_id=order.user_id,
        order_type=order.order_type.value,
        total_amount=str(order.total_amount),
        currency=order.currency,
        line_items=[line.model_dump(mode='json') for line in order.line_items]
    )
    event = Event(
        event_type=EventType.ORDER_CREATED,
        source=ServiceSource.ORDER_SERVICE,
        data=event_data.model_dump(mode='json'),
        subject=order.order_id
    )

    if await _publish(event_bus, event, "order.created"):
        logger.info(f"Published order.created event for order {order.order_id}")
        return True
    return False


async def publish_order_canceled(
    event_bus,
    order: Order,
    cancelled_by: str,
    restored: Optional[List[StockAdjustment]] = None
) -> bool:
    """Publish order.canceled event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.canceled event")
        return False

    event_data = OrderCanceledEvent(
        order_id=order.order_id,
        order_number=order.order_number,
        user_id=order.user_id,
        order_type=order.order_type.value,
        total_amount=str(order.total_amount),
        cancelled_by=cancelled_by,
        cancellation_reason=order.cancel_reason,
        restored=[adj.model_dump(mode='json') for adj in restored or []]
    )
    event = Event(
        event_type=EventType.ORDER_CANCELED,
        source=ServiceSource.ORDER_SERVICE,
        data=event_data.model_dump(mode='json'),
        subject=order.order_id
    )

    if await _publish(event_bus, event, "order.canceled"):
        logger.info(f"Published order.canceled event for order {order.order_id}")
        return True
    return False


async def publish_order_status_changed(event_bus, order: Order, old_status: OrderStatus) -> bool:
    """Publish order.status_changed event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.status_changed event")
        return False

    event_data = OrderStatusChangedEvent(
        order_id=order.order_id,
        order_number=order.order_number,
        user_id=order.user_id,
        old_status=old_status.value,
        new_status=order.status.value,
        tracking_number=order.tracking_number
    )
    event = Event(
        event_type=EventType.ORDER_STATUS_CHANGED,
        source=ServiceSource.ORDER_SERVICE,
        data=event_data.model_dump(mode='json'),
        subject=order.order_id
    )

    if await _publish(event_bus, event, "order.status_changed"):
        logger.info(f"Published order.status_changed event for order {order.order_id}")
        return True
    return False


async def publish_low_stock(
    event_bus,
    adjustment: StockAdjustment,
    threshold: int,
    order_id: Optional[str] = None
) -> bool:
    """Publish inventory.low_stock event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping inventory.low_stock event")
        return False

    event_data = LowStockEvent(
        product_id=adjustment.product_id,
        product_kind=adjustment.kind.value,
        product_name=adjustment.name,
        current_quantity=adjustment.new_quantity,
        threshold=threshold,
        order_id=order_id
    )
    event = Event(
        event_type=EventType.INVENTORY_LOW_STOCK,
        source=ServiceSource.ORDER_SERVICE,
        data=event_data.model_dump(mode='json'),
        subject=adjustment.product_id
    )

    if await _publish(event_bus, event, "inventory.low_stock"):
        logger.info(f"Published inventory.low_stock event for {adjustment.product_id}")
        return True
    return False

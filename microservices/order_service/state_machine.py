"""
Order status transitions

pending -> processing -> shipped -> delivered -> completed, with
cancelled reachable from pending/processing and returned reachable from
delivered/completed for rental orders.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from .models import Order, OrderStatus, OrderType
from .protocols import InvalidTransitionError

FORWARD_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
]

TERMINAL_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.COMPLETED, OrderStatus.RETURNED})
CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})
RETURNABLE_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.COMPLETED})
RETURNABLE_ORDER_TYPES = frozenset({OrderType.RENTAL})


def can_transition(current: OrderStatus, target: OrderStatus, order_type: OrderType) -> bool:
    """Whether ``current -> target`` is allowed for this order type"""
    if current == target:
        return False

    if target == OrderStatus.CANCELLED:
        return current in CANCELLABLE_STATUSES

    # completed is terminal except for the physical return of rented gear
    if target == OrderStatus.RETURNED:
        return current in RETURNABLE_STATUSES and order_type in RETURNABLE_ORDER_TYPES

    if current in TERMINAL_STATUSES or target not in FORWARD_SEQUENCE:
        return False

    return FORWARD_SEQUENCE.index(target) > FORWARD_SEQUENCE.index(current)


def ensure_transition(current: OrderStatus, target: OrderStatus, order_type: OrderType) -> None:
    """Raise InvalidTransitionError unless the transition is allowed"""
    if not can_transition(current, target, order_type):
        raise InvalidTransitionError(current, target)


def can_edit_delivery(order: Order, now: Optional[datetime] = None, window_hours: int = 24) -> bool:
    """Delivery details are editable while pending/processing and inside the window"""
    if order.status not in CANCELLABLE_STATUSES:
        return False

    now = now or datetime.now(timezone.utc)
    created_at = order.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return now - created_at <= timedelta(hours=window_hours)

"""
Order Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, AsyncContextManager, List, Optional, Protocol, runtime_checkable

from fastapi import status

from core.errors import ServiceError

# Import only models (no I/O dependencies)
from .models import DeliveryDetails, Order, OrderStatus, OrderStatusBreakdown, OrderType, CartItem


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class OrderServiceError(ServiceError):
    """Base exception for order service errors"""
    error_code = "ORDER_SERVICE_ERROR"


class InvalidRequestError(OrderServiceError):
    """Malformed or incomplete order request"""
    error_code = "INVALID_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(OrderServiceError):
    """Caller identity missing"""
    error_code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(OrderServiceError):
    """Caller may not act on this order"""
    error_code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


class OrderNotFoundError(OrderServiceError):
    """Order not found error"""
    error_code = "ORDER_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}", details={"order_id": order_id})
        self.order_id = order_id


class InvalidTransitionError(OrderServiceError):
    """Order status change not allowed from the current status"""
    error_code = "INVALID_TRANSITION"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: OrderStatus, target: OrderStatus):
        super().__init__(
            f"Cannot change order from {current.value} to {target.value}",
            details={"current": current.value, "target": target.value},
        )
        self.current = current
        self.target = target


class EditWindowExpiredError(OrderServiceError):
    """Delivery details can no longer be edited"""
    error_code = "EDIT_WINDOW_EXPIRED"
    status_code = status.HTTP_409_CONFLICT


class OrderNotDeletableError(OrderServiceError):
    """Order has moved past the point where its stock can be given back"""
    error_code = "ORDER_NOT_DELETABLE"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, order_id: str, current: OrderStatus):
        super().__init__(
            f"Order {order_id} cannot be deleted while {current.value}",
            details={"order_id": order_id, "current": current.value},
        )


class OrderPersistenceError(OrderServiceError):
    """Storage failed mid-transaction; nothing was applied"""
    error_code = "PERSISTENCE_ERROR"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class CartUnavailableError(OrderServiceError):
    """Cart service could not be read"""
    error_code = "CART_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


# ============================================================================
# Repository Protocol
# ============================================================================

@runtime_checkable
class OrderRepositoryProtocol(Protocol):
    """
    Interface for Order Repository.

    Implementations must provide these methods.
    Used for dependency injection to enable testing.
    """

    def transaction(self) -> AsyncContextManager[Any]:
        """Open a unit of work; yields the connection to pass as ``conn``"""
        ...

    async def create_order(self, order: Order, conn: Optional[Any] = None) -> Order:
        """Insert a new order"""
        ...

    async def get_order(
        self,
        order_id: str,
        conn: Optional[Any] = None,
        for_update: bool = False
    ) -> Optional[Order]:
        """Get order by ID; row-locked when for_update"""
        ...

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        conn: Optional[Any] = None,
        **fields: Any
    ) -> Optional[Order]:
        """Set status plus optional tracking_number/admin_notes/payment_status"""
        ...

    async def mark_cancelled(
        self,
        order_id: str,
        reason: str,
        conn: Optional[Any] = None
    ) -> Optional[Order]:
        """Set status cancelled with reason and timestamp"""
        ...

    async def update_delivery_details(
        self,
        order_id: str,
        details: DeliveryDetails,
        conn: Optional[Any] = None
    ) -> Optional[Order]:
        """Replace delivery details"""
        ...

    async def list_user_orders(
        self,
        user_id: str,
        status: Optional[OrderStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Order]:
        """Orders placed by one user, newest first"""
        ...

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Order]:
        """All orders, newest first"""
        ...

    async def delete_order(self, order_id: str, conn: Optional[Any] = None) -> bool:
        """Remove the order row; False when it did not exist"""
        ...

    async def get_user_order_stats(self, user_id: str) -> List[OrderStatusBreakdown]:
        """Order count and summed total per status for one user"""
        ...


# ============================================================================
# Event Bus Protocol
# ============================================================================

@runtime_checkable
class EventBusProtocol(Protocol):
    """Interface for Event Bus - no I/O imports"""

    async def publish_event(self, event: Any) -> bool:
        """Publish an event"""
        ...


# ============================================================================
# Client Protocols
# ============================================================================

@runtime_checkable
class NotificationClientProtocol(Protocol):
    """Interface for Notification Service Client"""

    async def notify_low_stock(
        self,
        product_id: str,
        product_name: str,
        current_quantity: int
    ) -> None:
        """Alert staff that a product is running low"""
        ...

    async def notify_order_created(self, order: Order) -> None:
        """Send the order confirmation"""
        ...


@runtime_checkable
class CartClientProtocol(Protocol):
    """Interface for Cart Service Client"""

    async def get_cart(self, user_id: str) -> List[CartItem]:
        """Items currently in the user's cart"""
        ...

    async def clear_cart(self, user_id: str) -> bool:
        """Empty the user's cart"""
        ...


__all__ = [
    "OrderServiceError",
    "InvalidRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "OrderNotFoundError",
    "InvalidTransitionError",
    "EditWindowExpiredError",
    "OrderPersistenceError",
    "CartUnavailableError",
    "OrderRepositoryProtocol",
    "EventBusProtocol",
    "NotificationClientProtocol",
    "CartClientProtocol",
]

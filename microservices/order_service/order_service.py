"""
Order Service Business Logic

Order placement with inventory reservation, cancellation with exact
restoration, and the admin/customer order ledger operations.

Placement and cancellation each run as one database transaction that
covers both the stock counters and the order row. Alerts, confirmation
mail and events go out afterwards on background tasks and can never undo
or fail a committed order.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

import asyncpg
import httpx

from core.config import CommerceConfig, get_settings
from microservices.inventory_service.models import InventoryItem, ProductKind, StockAdjustment
from microservices.inventory_service.protocols import (
    InsufficientStockError,
    InventoryRepositoryProtocol,
    ProductNotFoundError,
)

from .events.publishers import (
    publish_low_stock,
    publish_order_canceled,
    publish_order_created,
    publish_order_status_changed,
)
from .models import (
    ActorRole, CartOrderRequest, DeliveryDetails, DeliveryDetailsUpdateRequest,
    Order, OrderLineItem, OrderLineItemRequest, OrderListResponse, OrderResponse,
    OrderStatus, OrderStatusUpdateRequest, OrderType, PlaceOrderRequest, UserOrderStatsResponse
)
from .pricing import compute_totals, generate_order_number, line_subtotal, to_money
from .protocols import (
    CartClientProtocol,
    CartUnavailableError,
    EditWindowExpiredError,
    EventBusProtocol,
    ForbiddenError,
    InvalidRequestError,
    InvalidTransitionError,
    NotificationClientProtocol,
    OrderNotDeletableError,
    OrderNotFoundError,
    OrderPersistenceError,
    OrderRepositoryProtocol,
    UnauthorizedError,
)
from .state_machine import CANCELLABLE_STATUSES, can_edit_delivery, ensure_transition

logger = logging.getLogger(__name__)

# Driver-level failures that abort the unit of work
PERSISTENCE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

StockKey = Tuple[str, str]


def _stock_key(kind: ProductKind, product_id: str) -> StockKey:
    return (kind.value, product_id)


def _aggregate_demand(lines) -> "OrderedDict[StockKey, int]":
    """Total quantity per counter, in first-seen order; package lines skipped"""
    demand: "OrderedDict[StockKey, int]" = OrderedDict()
    for line in lines:
        if not line.product_kind.has_inventory:
            continue
        key = _stock_key(line.product_kind, line.product_id)
        demand[key] = demand.get(key, 0) + line.quantity
    return demand


def derive_order_type(lines) -> OrderType:
    """Any package -> package, else any rentable -> rental, else sales"""
    kinds = {line.product_kind for line in lines}
    if ProductKind.PACKAGE in kinds:
        return OrderType.PACKAGE
    if ProductKind.RENTABLE in kinds:
        return OrderType.RENTAL
    return OrderType.SALES


class OrderService:
    """
    Order management business logic service

    Handles reservation on placement, restoration on cancellation and the
    order status lifecycle.
    """

    def __init__(
        self,
        repository: OrderRepositoryProtocol,
        inventory_repository: InventoryRepositoryProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        notification_client: Optional[NotificationClientProtocol] = None,
        cart_client: Optional[CartClientProtocol] = None,
        config: Optional[CommerceConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize Order Service

        Args:
            repository: Order ledger repository
            inventory_repository: Stock counter repository sharing the ledger's database
            event_bus: NATS event bus instance (optional)
            notification_client: Notification service client (optional)
            cart_client: Cart service client (optional, needed for cart checkout)
            config: Commerce tunables (tax rate, thresholds, timeouts)
            clock: Time source, UTC
        """
        self.repository = repository
        self.inventory = inventory_repository
        self.event_bus = event_bus
        self.notification_client = notification_client
        self.cart_client = cart_client
        self.config = config or get_settings().commerce
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._background_tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # Placement
    # =========================================================================

    async def place_order(self, customer_id: Optional[str], request: PlaceOrderRequest) -> OrderResponse:
        """
        Reserve stock for every line and persist the order, all or nothing.

        Raises:
            InvalidRequestError, UnauthorizedError, ProductNotFoundError,
            InsufficientStockError, OrderPersistenceError
        """
        if not request.line_items:
            raise InvalidRequestError("Order must contain at least one item")
        if not customer_id:
            raise UnauthorizedError("Customer identity required to place an order")
        self._validate_package_lines(request.line_items)

        demand = _aggregate_demand(request.line_items)

        try:
            async with self.repository.transaction() as conn:
                # Lock counters in a fixed order so concurrent orders cannot deadlock
                products: Dict[StockKey, Optional[InventoryItem]] = {}
                for kind_value, product_id in sorted(demand):
                    products[(kind_value, product_id)] = await self.inventory.get_product(
                        product_id, ProductKind(kind_value), conn=conn, for_update=True
                    )

                for line in request.line_items:
                    if line.product_kind.has_inventory and products[_stock_key(line.product_kind, line.product_id)] is None:
                        raise ProductNotFoundError(line.product_id, line.product_kind)

                for key, requested in demand.items():
                    product = products[key]
                    if product.available_quantity < requested:
                        raise InsufficientStockError(key[1], product.available_quantity, requested, product.name)

                adjustments: List[StockAdjustment] = []
                for kind_value, product_id in sorted(demand):
                    requested = demand[(kind_value, product_id)]
                    adjustment = await self.inventory.try_decrement(
                        product_id, ProductKind(kind_value), requested, conn=conn
                    )
                    if adjustment is None:
                        product = products[(kind_value, product_id)]
                        raise InsufficientStockError(product_id, product.available_quantity, requested, product.name)
                    adjustments.append(adjustment)

                order = self._build_order(customer_id, request, products)
                created = await self.repository.create_order(order, conn=conn)

        except PERSISTENCE_ERRORS as e:
            logger.error(f"Order placement for {customer_id} rolled back: {e}")
            raise OrderPersistenceError("Order could not be saved, please retry") from e

        logger.info(
            f"Order {created.order_number} placed for {customer_id}: "
            f"{len(created.line_items)} items, total {created.total_amount} {created.currency}"
        )

        self._spawn(self._after_order_placed(created, adjustments), f"order {created.order_number} placed")

        return OrderResponse(
            success=True,
            order=created,
            message="Order placed successfully",
            stock_adjustments=adjustments,
        )

    async def place_order_from_cart(self, customer_id: Optional[str], request: CartOrderRequest) -> OrderResponse:
        """Turn the caller's cart into an order, then empty the cart"""
        if not customer_id:
            raise UnauthorizedError("Customer identity required to place an order")
        if self.cart_client is None:
            raise CartUnavailableError("Cart service not configured")

        try:
            cart_items = await self.cart_client.get_cart(customer_id)
        except httpx.HTTPError as e:
            logger.error(f"Failed to read cart for {customer_id}: {e}")
            raise CartUnavailableError("Cart could not be loaded, please retry") from e

        line_items = [
            OrderLineItemRequest(
                product_id=item.product_id,
                product_kind=item.product_kind,
                quantity=item.quantity,
                rental_days=item.rental_days if item.product_kind == ProductKind.RENTABLE else None,
            )
            for item in cart_items
        ]

        response = await self.place_order(customer_id, PlaceOrderRequest(
            line_items=line_items,
            payment=request.payment,
            delivery_details=request.delivery_details,
            notes=request.notes,
        ))

        if not await self.cart_client.clear_cart(customer_id):
            logger.warning(f"Order {response.order.order_number} placed but cart for {customer_id} was not cleared")

        return response

    # =========================================================================
    # Cancellation & status
    # =========================================================================

    async def cancel_order(
        self,
        order_id: str,
        actor_id: Optional[str],
        actor_role: ActorRole,
        reason: Optional[str] = None,
    ) -> OrderResponse:
        """
        Cancel a pending/processing order and give its stock back.

        The status change and every restore commit together.

        Raises:
            UnauthorizedError, OrderNotFoundError, ForbiddenError,
            InvalidTransitionError, OrderPersistenceError
        """
        if not actor_id:
            raise UnauthorizedError("Caller identity required to cancel an order")

        try:
            async with self.repository.transaction() as conn:
                order = await self.repository.get_order(order_id, conn=conn, for_update=True)
                if order is None:
                    raise OrderNotFoundError(order_id)
                if actor_role == ActorRole.CUSTOMER and order.user_id != actor_id:
                    raise ForbiddenError("Not authorized to cancel this order", details={"order_id": order_id})
                ensure_transition(order.status, OrderStatus.CANCELLED, order.order_type)

                cancelled, restored = await self._cancel_locked(order, actor_role, reason, conn)

        except PERSISTENCE_ERRORS as e:
            logger.error(f"Cancellation of order {order_id} rolled back: {e}")
            raise OrderPersistenceError("Order could not be cancelled, please retry") from e

        logger.info(
            f"Order {cancelled.order_number} cancelled by {actor_role.value} {actor_id}: {cancelled.cancel_reason}"
        )

        self._spawn(
            publish_order_canceled(self.event_bus, cancelled, actor_role.value, restored),
            f"order {cancelled.order_number} cancelled",
        )

        return OrderResponse(
            success=True,
            order=cancelled,
            message="Order cancelled successfully",
            stock_adjustments=restored,
        )

    async def update_order_status(
        self,
        order_id: str,
        actor_id: Optional[str],
        actor_role: ActorRole,
        request: OrderStatusUpdateRequest,
    ) -> OrderResponse:
        """
        Admin order update.

        A new status must be a legal transition; cancelling restores stock
        in the same transaction. Sending the current status updates only
        payment status, tracking number and admin notes.
        """
        if actor_role != ActorRole.ADMIN:
            raise ForbiddenError("Admin privileges required to change order status")

        admin_fields = {
            key: value for key, value in (
                ("payment_status", request.payment_status),
                ("tracking_number", request.tracking_number),
                ("admin_notes", request.admin_notes),
            ) if value is not None
        }
        restored: List[StockAdjustment] = []

        try:
            async with self.repository.transaction() as conn:
                order = await self.repository.get_order(order_id, conn=conn, for_update=True)
                if order is None:
                    raise OrderNotFoundError(order_id)

                if request.status == order.status:
                    if not admin_fields:
                        raise InvalidTransitionError(order.status, request.status)
                    updated = await self.repository.update_status(
                        order_id, order.status, conn=conn, **admin_fields
                    )
                elif request.status == OrderStatus.CANCELLED:
                    ensure_transition(order.status, request.status, order.order_type)
                    updated, restored = await self._cancel_locked(order, actor_role, request.reason, conn)
                    if admin_fields:
                        updated = await self.repository.update_status(
                            order_id, OrderStatus.CANCELLED, conn=conn, **admin_fields
                        )
                else:
                    ensure_transition(order.status, request.status, order.order_type)
                    updated = await self.repository.update_status(
                        order_id, request.status, conn=conn, **admin_fields
                    )
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Status update of order {order_id} rolled back: {e}")
            raise OrderPersistenceError("Order status could not be saved, please retry") from e

        if updated.status == order.status:
            logger.info(f"Order {updated.order_number} updated by admin {actor_id}: {', '.join(admin_fields)}")
            return OrderResponse(success=True, order=updated, message="Order updated")

        if updated.status == OrderStatus.CANCELLED:
            logger.info(f"Order {updated.order_number} cancelled by admin {actor_id}: {updated.cancel_reason}")
            self._spawn(
                publish_order_canceled(self.event_bus, updated, actor_role.value, restored),
                f"order {updated.order_number} cancelled",
            )
            return OrderResponse(
                success=True,
                order=updated,
                message="Order cancelled successfully",
                stock_adjustments=restored,
            )

        logger.info(f"Order {updated.order_number} moved {order.status.value} -> {updated.status.value}")

        self._spawn(
            publish_order_status_changed(self.event_bus, updated, order.status),
            f"order {updated.order_number} status change",
        )

        return OrderResponse(success=True, order=updated, message="Order status updated")

    async def delete_order(self, order_id: str, actor_id: Optional[str], actor_role: ActorRole) -> OrderResponse:
        """
        Remove an order from the ledger (admin only).

        Cancelled orders are removed as they are. Pending and processing
        orders get their stock back in the same transaction. Anything
        further along raises OrderNotDeletableError.
        """
        if actor_role != ActorRole.ADMIN:
            raise ForbiddenError("Admin privileges required to delete orders")

        try:
            async with self.repository.transaction() as conn:
                order = await self.repository.get_order(order_id, conn=conn, for_update=True)
                if order is None:
                    raise OrderNotFoundError(order_id)

                restored: List[StockAdjustment] = []
                if order.status in CANCELLABLE_STATUSES:
                    restored = await self._restore_stock(order, conn)
                elif order.status != OrderStatus.CANCELLED:
                    raise OrderNotDeletableError(order_id, order.status)

                await self.repository.delete_order(order_id, conn=conn)
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Deletion of order {order_id} rolled back: {e}")
            raise OrderPersistenceError("Order could not be deleted, please retry") from e

        logger.info(
            f"Order {order.order_number} ({order.status.value}) deleted by admin {actor_id}, "
            f"{len(restored)} stock counters restored"
        )
        return OrderResponse(success=True, order=order, message="Order deleted", stock_adjustments=restored)

    async def update_delivery_details(
        self,
        order_id: str,
        customer_id: Optional[str],
        details: DeliveryDetailsUpdateRequest,
    ) -> OrderResponse:
        """Owner-only delivery edit, pending/processing and inside the edit window"""
        if not customer_id:
            raise UnauthorizedError("Customer identity required to edit an order")

        try:
            async with self.repository.transaction() as conn:
                order = await self.repository.get_order(order_id, conn=conn, for_update=True)
                if order is None:
                    raise OrderNotFoundError(order_id)
                if order.user_id != customer_id:
                    raise ForbiddenError("Not authorized to edit this order", details={"order_id": order_id})
                if not can_edit_delivery(order, self.clock(), self.config.delivery_edit_window_hours):
                    raise EditWindowExpiredError(
                        f"Delivery details can only be edited within "
                        f"{self.config.delivery_edit_window_hours} hours while the order is pending or processing",
                        details={"order_id": order_id, "status": order.status.value},
                    )

                current = order.delivery_details or DeliveryDetails()
                merged = current.model_copy(update=details.model_dump(exclude_none=True))
                updated = await self.repository.update_delivery_details(
                    order_id, DeliveryDetails(**merged.model_dump()), conn=conn
                )
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Delivery update of order {order_id} rolled back: {e}")
            raise OrderPersistenceError("Delivery details could not be saved, please retry") from e

        logger.info(f"Delivery details updated for order {updated.order_number}")
        return OrderResponse(success=True, order=updated, message="Delivery details updated")

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_order(self, order_id: str, actor_id: Optional[str], actor_role: ActorRole) -> Order:
        """Get one order; customers only see their own"""
        if not actor_id:
            raise UnauthorizedError("Caller identity required")

        order = await self.repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if actor_role == ActorRole.CUSTOMER and order.user_id != actor_id:
            raise ForbiddenError("Not authorized to view this order", details={"order_id": order_id})
        return order

    async def list_user_orders(
        self,
        user_id: Optional[str],
        status: Optional[OrderStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> OrderListResponse:
        """The caller's own orders, newest first"""
        if not user_id:
            raise UnauthorizedError("Caller identity required")

        orders = await self.repository.list_user_orders(user_id, status=status, limit=limit + 1, offset=offset)
        return self._page(orders, limit, offset)

    async def get_user_order_stats(self, user_id: Optional[str]) -> UserOrderStatsResponse:
        """Order count, money spent outside cancelled orders, and a per-status breakdown"""
        if not user_id:
            raise UnauthorizedError("Caller identity required")

        breakdown = await self.repository.get_user_order_stats(user_id)
        total_spent = sum(
            (entry.total_amount for entry in breakdown if entry.status != OrderStatus.CANCELLED),
            Decimal("0")
        )
        return UserOrderStatsResponse(
            user_id=user_id,
            total_orders=sum(entry.count for entry in breakdown),
            total_spent=to_money(total_spent),
            currency=self.config.currency,
            status_breakdown=breakdown,
        )

    async def list_orders(
        self,
        actor_role: ActorRole,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> OrderListResponse:
        """All orders (admin only)"""
        if actor_role != ActorRole.ADMIN:
            raise ForbiddenError("Admin privileges required to list all orders")

        orders = await self.repository.list_orders(status=status, order_type=order_type, limit=limit + 1, offset=offset)
        return self._page(orders, limit, offset)

    # =========================================================================
    # Background work
    # =========================================================================

    async def drain_background_tasks(self):
        """Wait for all outstanding post-commit work"""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def _spawn(self, work: Awaitable, label: str):
        task = asyncio.create_task(self._run_bounded(work, label))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _run_bounded(self, work: Awaitable, label: str):
        try:
            await asyncio.wait_for(work, timeout=self.config.notification_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Post-commit work for {label} timed out after {self.config.notification_timeout_seconds}s")
        except Exception as e:
            logger.error(f"Post-commit work for {label} failed: {e}")

    async def _after_order_placed(self, order: Order, adjustments: List[StockAdjustment]):
        threshold = self.config.low_stock_threshold
        for adjustment in adjustments:
            if adjustment.new_quantity <= threshold and adjustment.new_quantity < adjustment.old_quantity:
                await self._send_low_stock_alert(adjustment)
                await publish_low_stock(self.event_bus, adjustment, threshold, order.order_id)

        if self.notification_client is not None:
            try:
                await self.notification_client.notify_order_created(order)
            except Exception as e:
                logger.error(f"Order confirmation for {order.order_number} failed: {e}")

        await publish_order_created(self.event_bus, order)

    async def _send_low_stock_alert(self, adjustment: StockAdjustment):
        if self.notification_client is None:
            logger.warning(f"Low stock on {adjustment.product_id} ({adjustment.new_quantity} left), no notifier configured")
            return
        try:
            await self.notification_client.notify_low_stock(
                adjustment.product_id, adjustment.name, adjustment.new_quantity
            )
            logger.info(f"Low stock alert sent for {adjustment.kind.value} {adjustment.name}: {adjustment.new_quantity} left")
        except Exception as e:
            logger.error(f"Low stock alert for {adjustment.product_id} failed: {e}")

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _cancel_locked(
        self,
        order: Order,
        actor_role: ActorRole,
        reason: Optional[str],
        conn,
    ) -> Tuple[Order, List[StockAdjustment]]:
        cancel_reason = reason or (
            "Cancelled by admin" if actor_role == ActorRole.ADMIN else "Cancelled by customer"
        )
        cancelled = await self.repository.mark_cancelled(order.order_id, cancel_reason, conn=conn)
        restored = await self._restore_stock(order, conn)
        return cancelled, restored

    async def _restore_stock(self, order: Order, conn) -> List[StockAdjustment]:
        # Restore from the recorded lines, never from current catalog state
        demand = _aggregate_demand(order.line_items)
        restored: List[StockAdjustment] = []
        for kind_value, product_id in sorted(demand):
            adjustment = await self.inventory.increment(
                product_id, ProductKind(kind_value), demand[(kind_value, product_id)], conn=conn
            )
            if adjustment is not None:
                restored.append(adjustment)
        return restored

    def _validate_package_lines(self, lines: List[OrderLineItemRequest]):
        for line in lines:
            if line.product_kind == ProductKind.PACKAGE and (line.unit_price is None or not line.name):
                raise InvalidRequestError(
                    "Package items must carry unit_price and name",
                    details={"product_id": line.product_id},
                )

    def _build_order(
        self,
        customer_id: str,
        request: PlaceOrderRequest,
        products: Dict[StockKey, Optional[InventoryItem]],
    ) -> Order:
        line_items = [self._snapshot_line(line, products) for line in request.line_items]
        totals = compute_totals(
            line_items,
            tax=request.payment.tax,
            shipping_cost=request.payment.shipping_cost,
            tax_rate=self.config.tax_rate,
        )
        now = self.clock()

        return Order(
            order_id=f"order_{uuid.uuid4().hex[:12]}",
            order_number=generate_order_number(),
            user_id=customer_id,
            order_type=derive_order_type(line_items),
            line_items=line_items,
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping_cost=totals.shipping_cost,
            total_amount=totals.total_amount,
            currency=self.config.currency,
            status=OrderStatus.PENDING,
            payment_method=request.payment.method,
            transaction_id=request.payment.transaction_id,
            delivery_details=request.delivery_details,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )

    def _snapshot_line(
        self,
        line: OrderLineItemRequest,
        products: Dict[StockKey, Optional[InventoryItem]],
    ) -> OrderLineItem:
        if line.product_kind == ProductKind.PACKAGE:
            name = line.name
            unit_price = to_money(line.unit_price)
            rental_days = line.rental_days
        else:
            product = products[_stock_key(line.product_kind, line.product_id)]
            name = product.name
            unit_price = to_money(product.price)
            rental_days = (line.rental_days or 1) if line.product_kind == ProductKind.RENTABLE else None

        return OrderLineItem(
            product_id=line.product_id,
            product_kind=line.product_kind,
            name=name,
            quantity=line.quantity,
            unit_price=unit_price,
            rental_days=rental_days,
            subtotal=line_subtotal(line.product_kind, unit_price, line.quantity, rental_days),
        )

    def _page(self, orders: List[Order], limit: int, offset: int) -> OrderListResponse:
        has_next = len(orders) > limit
        page = orders[:limit]
        return OrderListResponse(orders=page, count=len(page), limit=limit, offset=offset, has_next=has_next)

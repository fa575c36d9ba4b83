"""
Order Microservice

Responsibilities:
- Order placement with atomic inventory reservation
- Cancellation with exact stock restoration
- Order status lifecycle (admin)
- Customer delivery edits, order history and order statistics
- Admin order deletion
"""

from fastapi import FastAPI, HTTPException, Depends, status, Query, Path, Body
import uvicorn
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from core.auth_dependencies import Actor, get_current_actor, require_admin
from core.config_manager import ConfigManager
from core.errors import ServiceError, service_error_handler
from core.logger import setup_service_logger
from core.nats_client import get_event_bus
from core.postgres_client import get_postgres_client

from .order_service import OrderService
from .models import (
    ActorRole, CartOrderRequest, DeliveryDetailsUpdateRequest, Order,
    OrderCancelRequest, OrderListResponse, OrderResponse, OrderServiceStatus,
    OrderStatus, OrderStatusUpdateRequest, OrderType, PlaceOrderRequest, UserOrderStatsResponse
)
from .routes_registry import SERVICE_METADATA, get_route_summary

# Initialize configuration
config_manager = ConfigManager("order_service")
config = config_manager.get_service_config()

logger = setup_service_logger("order_service")


class OrderMicroservice:
    """Order microservice core class"""

    def __init__(self):
        self.order_service: Optional[OrderService] = None
        self.event_bus = None
        self.db = None

    async def initialize(self, event_bus=None):
        """Initialize the microservice"""
        from .factory import create_order_service

        self.event_bus = event_bus
        self.db = await get_postgres_client("order_service")
        self.order_service = create_order_service(config=config_manager, db=self.db, event_bus=event_bus)

        await self.order_service.inventory.ensure_schema()
        await self.order_service.repository.ensure_schema()
        logger.info("Order microservice initialized successfully")

    async def shutdown(self):
        """Shutdown the microservice"""
        if self.order_service:
            await self.order_service.drain_background_tasks()
            for client in (self.order_service.notification_client, self.order_service.cart_client):
                if client is not None:
                    await client.close()
        if self.event_bus:
            await self.event_bus.close()
            logger.info("Event bus closed")
        if self.db:
            await self.db.close()
        logger.info("Order microservice shutdown completed")


# Global microservice instance
order_microservice = OrderMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    event_bus = None
    try:
        event_bus = await get_event_bus("order_service", config=config_manager)
        logger.info("Event bus initialized successfully")
    except Exception as e:
        logger.warning(f"Failed to initialize event bus: {e}. Continuing without event publishing.")
        event_bus = None

    await order_microservice.initialize(event_bus=event_bus)

    yield

    await order_microservice.shutdown()


# Create FastAPI application
app = FastAPI(
    title="Order Service",
    description="Order placement, inventory reservation and order lifecycle",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan
)

# CORS handled by Gateway

app.add_exception_handler(ServiceError, service_error_handler)


# Dependency injection
def get_order_service() -> OrderService:
    """Get order service instance"""
    if not order_microservice.order_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order service not initialized"
        )
    return order_microservice.order_service


def _role(actor: Actor) -> ActorRole:
    return ActorRole.ADMIN if actor.is_admin else ActorRole.CUSTOMER


# Health check endpoints
@app.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": config.service_name,
        "port": config.service_port,
        "version": SERVICE_METADATA["version"],
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health/detailed", response_model=OrderServiceStatus)
async def detailed_health_check():
    """Detailed health check with database and event bus connectivity"""
    database_connected = False
    if order_microservice.db is not None:
        health = await order_microservice.db.health_check()
        database_connected = bool(health and health.get("healthy"))

    event_bus = order_microservice.event_bus
    return OrderServiceStatus(
        status="operational" if database_connected else "degraded",
        port=config.service_port,
        version=SERVICE_METADATA["version"],
        database_connected=database_connected,
        event_bus_connected=bool(event_bus is not None and event_bus.is_connected),
        timestamp=datetime.utcnow()
    )


@app.get("/api/v1/order/info")
async def service_info():
    """Service metadata and routes"""
    return {**SERVICE_METADATA, **get_route_summary()}


# Core order endpoints

@app.post("/api/v1/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    request: PlaceOrderRequest,
    actor: Actor = Depends(get_current_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Place an order, reserving stock for every item"""
    return await order_service.place_order(actor.user_id, request)


@app.post("/api/v1/orders/from-cart", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order_from_cart(
    request: CartOrderRequest,
    actor: Actor = Depends(get_current_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Place an order from the caller's cart"""
    return await order_service.place_order_from_cart(actor.user_id, request)


@app.get("/api/v1/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: str = Path(..., description="Order ID"),
    actor: Actor = Depends(get_current_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Get order details"""
    return await order_service.get_order(order_id, actor.user_id, _role(actor))


@app.post("/api/v1/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str = Path(..., description="Order ID"),
    request: Optional[OrderCancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Cancel a pending or processing order and restore its stock"""
    reason = request.reason if request else None
    return await order_service.cancel_order(order_id, actor.user_id, _role(actor), reason)


@app.put("/api/v1/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str = Path(..., description="Order ID"),
    request: OrderStatusUpdateRequest = Body(...),
    actor: Actor = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service)
):
    """Move an order along its lifecycle (admin)"""
    return await order_service.update_order_status(order_id, actor.user_id, _role(actor), request)


@app.delete("/api/v1/orders/{order_id}", response_model=OrderResponse)
async def delete_order(
    order_id: str = Path(..., description="Order ID"),
    actor: Actor = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service)
):
    """Delete a cancelled order, or a pending/processing one with its stock restored (admin)"""
    return await order_service.delete_order(order_id, actor.user_id, _role(actor))


@app.put("/api/v1/orders/{order_id}/delivery", response_model=OrderResponse)
async def update_delivery_details(
    order_id: str = Path(..., description="Order ID"),
    request: DeliveryDetailsUpdateRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Edit delivery details within the edit window"""
    return await order_service.update_delivery_details(order_id, actor.user_id, request)


@app.get("/api/v1/users/me/orders", response_model=OrderListResponse)
async def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """The caller's orders, newest first"""
    return await order_service.list_user_orders(actor.user_id, status=status_filter, limit=limit, offset=offset)


@app.get("/api/v1/users/me/orders/stats", response_model=UserOrderStatsResponse)
async def get_my_order_stats(
    actor: Actor = Depends(get_current_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Order count, amount spent and per-status breakdown for the caller"""
    return await order_service.get_user_order_stats(actor.user_id)


@app.get("/api/v1/orders", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filter by status"),
    order_type: Optional[OrderType] = Query(None, description="Filter by order type"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service)
):
    """All orders (admin)"""
    return await order_service.list_orders(
        _role(actor), status=status_filter, order_type=order_type, limit=limit, offset=offset
    )


if __name__ == "__main__":
    # Print configuration summary for debugging
    config_manager.print_config_summary()

    uvicorn.run(
        "microservices.order_service.main:app",
        host=config.service_host,
        port=config.service_port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )

"""
Order Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_order_service
    service = create_order_service(config, db, event_bus)
"""
from typing import Optional

from core.config_manager import ConfigManager

from .order_service import OrderService


def create_order_service(
    config: Optional[ConfigManager] = None,
    db=None,
    event_bus=None,
    notification_client=None,
    cart_client=None,
) -> OrderService:
    """
    Create OrderService with real dependencies.

    The order ledger and the stock counters share one PostgresClient so a
    placement or cancellation commits both in a single transaction.

    Args:
        config: Configuration manager
        db: Shared PostgresClient (one is created when omitted)
        event_bus: Event bus for publishing events
        notification_client: Notification service client
        cart_client: Cart service client

    Returns:
        Configured OrderService instance
    """
    # Import real repositories here (not at module level)
    from core.postgres_client import PostgresClient
    from microservices.inventory_service.inventory_repository import InventoryRepository
    from .order_repository import OrderRepository
    from .clients import CartClient, NotificationClient

    if config is None:
        config = ConfigManager("order_service")
    if db is None:
        db = PostgresClient(service_name=config.service_name)

    return OrderService(
        repository=OrderRepository(config=config, db=db),
        inventory_repository=InventoryRepository(config=config, db=db),
        event_bus=event_bus,
        notification_client=notification_client or NotificationClient(),
        cart_client=cart_client or CartClient(),
        config=config.settings.commerce,
    )

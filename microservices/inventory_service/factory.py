"""
Inventory Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.
"""
from typing import Optional

from core.config_manager import ConfigManager

from .inventory_service import InventoryService


def create_inventory_service(config: Optional[ConfigManager] = None, db=None) -> InventoryService:
    """
    Create InventoryService with the PostgreSQL repository.

    Args:
        config: Configuration manager
        db: Shared PostgresClient (one is created when omitted)
    """
    from .inventory_repository import InventoryRepository

    if config is None:
        config = ConfigManager("inventory_service")

    repository = InventoryRepository(config=config, db=db)
    return InventoryService(
        repository=repository,
        low_stock_threshold=config.settings.commerce.low_stock_threshold,
    )

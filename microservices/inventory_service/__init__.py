"""
Inventory Service Package

Atomic stock counters for sellable and rentable products.
"""

from .models import (
    ProductKind,
    AvailabilityStatus,
    InventoryItem,
    StockAdjustment,
)
from .protocols import (
    InventoryRepositoryProtocol,
    ProductNotFoundError,
    InsufficientStockError,
)
from .inventory_service import InventoryService

__version__ = "1.0.0"
__all__ = [
    "ProductKind",
    "AvailabilityStatus",
    "InventoryItem",
    "StockAdjustment",
    "InventoryRepositoryProtocol",
    "ProductNotFoundError",
    "InsufficientStockError",
    "InventoryService",
]

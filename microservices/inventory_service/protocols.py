"""
Inventory Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, List, Optional, Protocol, runtime_checkable

from fastapi import status

from core.errors import ServiceError

from .models import InventoryItem, ProductKind, StockAdjustment


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class ProductNotFoundError(ServiceError):
    """Referenced product does not exist or is inactive"""
    error_code = "PRODUCT_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, product_id: str, kind: Optional[ProductKind] = None):
        super().__init__(
            f"Product not found: {product_id}",
            details={"product_id": product_id, "kind": kind.value if kind else None},
        )
        self.product_id = product_id
        self.kind = kind


class InsufficientStockError(ServiceError):
    """Requested quantity exceeds available stock"""
    error_code = "INSUFFICIENT_STOCK"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id: str, available: int, requested: int, name: Optional[str] = None):
        label = name or product_id
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            details={"product_id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


# ============================================================================
# Repository Protocol
# ============================================================================

@runtime_checkable
class InventoryRepositoryProtocol(Protocol):
    """
    Interface for the Inventory Store.

    Every mutating method takes an optional ``conn`` so callers can run
    several counter changes and their own writes in one transaction.
    """

    async def get_product(
        self,
        product_id: str,
        kind: ProductKind,
        conn: Optional[Any] = None,
        for_update: bool = False,
    ) -> Optional[InventoryItem]:
        """Get an active product's stock record"""
        ...

    async def try_decrement(
        self,
        product_id: str,
        kind: ProductKind,
        amount: int,
        conn: Optional[Any] = None,
    ) -> Optional[StockAdjustment]:
        """Decrement if enough stock; None (and no change) otherwise"""
        ...

    async def increment(
        self,
        product_id: str,
        kind: ProductKind,
        amount: int,
        conn: Optional[Any] = None,
    ) -> Optional[StockAdjustment]:
        """Restore stock; None when the product no longer exists"""
        ...

    async def list_low_stock(self, threshold: int) -> List[InventoryItem]:
        """Products whose available quantity is at or below threshold"""
        ...

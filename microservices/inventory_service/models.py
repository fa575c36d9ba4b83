"""
Inventory Service Data Models

Sellable products track plain stock; rentable products track an available
count against a fixed fleet size. Package products carry no counter.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ProductKind(str, Enum):
    """Product kind resolved once per order line"""
    SELLABLE = "sellable"
    RENTABLE = "rentable"
    PACKAGE = "package"

    @property
    def has_inventory(self) -> bool:
        return self is not ProductKind.PACKAGE


class AvailabilityStatus(str, Enum):
    """Rental availability marker (informational only)"""
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    UNAVAILABLE = "unavailable"


class InventoryItem(BaseModel):
    """Stock record for a product"""
    product_id: str
    kind: ProductKind
    name: str
    price: Decimal = Field(default=Decimal("0"), ge=0)
    available_quantity: int = Field(default=0, ge=0)
    total_quantity: Optional[int] = Field(default=None, ge=0)
    availability_status: Optional[AvailabilityStatus] = None
    is_active: bool = True
    updated_at: Optional[datetime] = None


class StockAdjustment(BaseModel):
    """Result of a single counter change"""
    product_id: str
    kind: ProductKind
    name: str
    old_quantity: int
    new_quantity: int
    delta: int


class StockLevelResponse(BaseModel):
    """Stock level response"""
    success: bool
    item: Optional[InventoryItem] = None
    message: Optional[str] = None


class LowStockResponse(BaseModel):
    """Products at or below the low-stock threshold"""
    success: bool = True
    threshold: int
    items: List[InventoryItem] = Field(default_factory=list)
    count: int = 0

"""
Inventory Service Business Logic

Read-side operations over the stock counters. Counter mutation happens
inside the order service's transactions through the repository directly.
"""

import logging
from typing import Optional

from .models import LowStockResponse, ProductKind, StockLevelResponse
from .protocols import InventoryRepositoryProtocol, ProductNotFoundError

logger = logging.getLogger(__name__)


class InventoryService:
    """Inventory query service"""

    def __init__(self, repository: InventoryRepositoryProtocol, low_stock_threshold: int = 5):
        self.repository = repository
        self.low_stock_threshold = low_stock_threshold

    async def get_stock(self, product_id: str, kind: ProductKind) -> StockLevelResponse:
        """Current stock for one product; raises ProductNotFoundError"""
        if not kind.has_inventory:
            raise ProductNotFoundError(product_id, kind)

        item = await self.repository.get_product(product_id, kind)
        if item is None:
            raise ProductNotFoundError(product_id, kind)

        return StockLevelResponse(success=True, item=item)

    async def list_low_stock(self, threshold: Optional[int] = None) -> LowStockResponse:
        """Products at or below threshold (configured default when omitted)"""
        limit = self.low_stock_threshold if threshold is None else threshold
        items = await self.repository.list_low_stock(limit)
        logger.debug(f"{len(items)} products at or below {limit}")
        return LowStockResponse(threshold=limit, items=items, count=len(items))

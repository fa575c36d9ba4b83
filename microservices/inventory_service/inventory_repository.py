"""
Inventory Repository

Data access layer for the stock counters using PostgresClient.
Matches schema: inventory.products
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import asyncpg

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient

from .models import AvailabilityStatus, InventoryItem, ProductKind, StockAdjustment

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE SCHEMA IF NOT EXISTS inventory;

CREATE TABLE IF NOT EXISTS inventory.products (
    product_id          TEXT        NOT NULL,
    kind                TEXT        NOT NULL CHECK (kind IN ('sellable', 'rentable')),
    name                TEXT        NOT NULL,
    price               NUMERIC(12, 2) NOT NULL DEFAULT 0,
    available_quantity  INTEGER     NOT NULL DEFAULT 0 CHECK (available_quantity >= 0),
    total_quantity      INTEGER     NULL,
    availability_status TEXT        NULL,
    is_active           BOOLEAN     NOT NULL DEFAULT TRUE,
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (product_id, kind)
);

CREATE INDEX IF NOT EXISTS idx_products_available
    ON inventory.products (available_quantity) WHERE is_active;
"""


class InventoryRepository:
    """
    Repository for stock counter operations.

    Tables:
        - inventory.products: one counter per (product_id, kind)
    """

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[PostgresClient] = None):
        """Initialize Inventory Repository with PostgresClient"""
        if config is None:
            config = ConfigManager("inventory_service")

        self.db = db or PostgresClient(service_name=config.service_name)

        self.schema = "inventory"
        self.products_table = "products"

        logger.info("InventoryRepository initialized with PostgresClient")

    @property
    def _table(self) -> str:
        return f'"{self.schema}".{self.products_table}'

    async def ensure_schema(self):
        """Create the inventory schema and table when missing"""
        await self.db.execute(SCHEMA_SQL)

    async def get_product(
        self,
        product_id: str,
        kind: ProductKind,
        conn: Optional[asyncpg.Connection] = None,
        for_update: bool = False,
    ) -> Optional[InventoryItem]:
        """Get an active product; row-locked when for_update"""
        query = f"""
            SELECT * FROM {self._table}
            WHERE product_id = $1 AND kind = $2 AND is_active
        """
        if for_update:
            query += " FOR UPDATE"

        result = await self.db.query_row(query, [product_id, kind.value], conn=conn)
        return self._dict_to_item(result) if result else None

    async def try_decrement(
        self,
        product_id: str,
        kind: ProductKind,
        amount: int,
        conn: Optional[asyncpg.Connection] = None,
    ) -> Optional[StockAdjustment]:
        """
        Atomically take ``amount`` units.

        The stock check and the write are one conditional UPDATE, so two
        concurrent callers can never drive the counter below zero. Returns
        None without touching the row when stock is insufficient.
        """
        query = f"""
            UPDATE {self._table}
            SET available_quantity = available_quantity - $3,
                availability_status = CASE
                    WHEN kind = 'rentable' AND available_quantity - $3 = 0
                        THEN '{AvailabilityStatus.UNAVAILABLE.value}'
                    ELSE availability_status
                END,
                updated_at = NOW()
            WHERE product_id = $1 AND kind = $2 AND is_active
              AND available_quantity >= $3
            RETURNING product_id, kind, name,
                      available_quantity + $3 AS old_quantity,
                      available_quantity AS new_quantity
        """
        result = await self.db.query_row(query, [product_id, kind.value, amount], conn=conn)
        if not result:
            return None

        adjustment = self._dict_to_adjustment(result)
        logger.info(
            f"Stock decremented for {kind.value} {product_id}: "
            f"{adjustment.old_quantity} -> {adjustment.new_quantity}"
        )
        return adjustment

    async def increment(
        self,
        product_id: str,
        kind: ProductKind,
        amount: int,
        conn: Optional[asyncpg.Connection] = None,
    ) -> Optional[StockAdjustment]:
        """
        Give back ``amount`` units.

        Restores into inactive products too; only a row that no longer
        exists is skipped (logged, not raised).
        """
        query = f"""
            UPDATE {self._table}
            SET available_quantity = available_quantity + $3,
                availability_status = CASE
                    WHEN availability_status = '{AvailabilityStatus.UNAVAILABLE.value}'
                         AND available_quantity + $3 > 0
                        THEN '{AvailabilityStatus.AVAILABLE.value}'
                    ELSE availability_status
                END,
                updated_at = NOW()
            WHERE product_id = $1 AND kind = $2
            RETURNING product_id, kind, name,
                      available_quantity - $3 AS old_quantity,
                      available_quantity AS new_quantity
        """
        result = await self.db.query_row(query, [product_id, kind.value, amount], conn=conn)
        if not result:
            logger.warning(f"Skipping stock restore for missing {kind.value} product {product_id} (+{amount})")
            return None

        adjustment = self._dict_to_adjustment(result)
        logger.info(
            f"Stock restored for {kind.value} {product_id}: "
            f"{adjustment.old_quantity} -> {adjustment.new_quantity}"
        )
        return adjustment

    async def list_low_stock(self, threshold: int) -> List[InventoryItem]:
        """List active products at or below threshold"""
        query = f"""
            SELECT * FROM {self._table}
            WHERE is_active AND available_quantity <= $1
            ORDER BY available_quantity ASC, product_id ASC
        """
        results = await self.db.query(query, [threshold])
        return [self._dict_to_item(row) for row in results]

    def _dict_to_item(self, data: Dict[str, Any]) -> InventoryItem:
        """Convert a row to InventoryItem"""
        status = data.get("availability_status")
        return InventoryItem(
            product_id=data["product_id"],
            kind=ProductKind(data["kind"]),
            name=data["name"],
            price=Decimal(str(data.get("price") or 0)),
            available_quantity=data["available_quantity"],
            total_quantity=data.get("total_quantity"),
            availability_status=AvailabilityStatus(status) if status else None,
            is_active=data.get("is_active", True),
            updated_at=data.get("updated_at"),
        )

    def _dict_to_adjustment(self, data: Dict[str, Any]) -> StockAdjustment:
        old_quantity = data["old_quantity"]
        new_quantity = data["new_quantity"]
        return StockAdjustment(
            product_id=data["product_id"],
            kind=ProductKind(data["kind"]),
            name=data["name"],
            old_quantity=old_quantity,
            new_quantity=new_quantity,
            delta=new_quantity - old_quantity,
        )

"""
Order Repository

Data access layer for the order ledger using PostgresClient.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from decimal import Decimal
import json
import logging

import asyncpg

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient
from .models import (
    DeliveryDetails, Order, OrderLineItem, OrderStatus, OrderStatusBreakdown,
    OrderType, PaymentMethod, PaymentStatus
)

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE SCHEMA IF NOT EXISTS orders;

CREATE TABLE IF NOT EXISTS orders.orders (
    order_id         TEXT PRIMARY KEY,
    order_number     TEXT NOT NULL,
    user_id          TEXT NOT NULL,
    order_type       TEXT NOT NULL,
    line_items       JSONB NOT NULL,
    subtotal         NUMERIC(12, 2) NOT NULL,
    tax              NUMERIC(12, 2) NOT NULL,
    shipping_cost    NUMERIC(12, 2) NOT NULL,
    total_amount     NUMERIC(12, 2) NOT NULL,
    currency         TEXT NOT NULL DEFAULT 'USD',
    status           TEXT NOT NULL,
    payment_status   TEXT NOT NULL,
    payment_method   TEXT NOT NULL,
    transaction_id   TEXT NULL,
    delivery_details JSONB NULL,
    notes            TEXT NULL,
    tracking_number  TEXT NULL,
    admin_notes      TEXT NULL,
    cancel_reason    TEXT NULL,
    created_at       TIMESTAMPTZ NOT NULL,
    updated_at       TIMESTAMPTZ NOT NULL,
    cancelled_at     TIMESTAMPTZ NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_orders_order_number ON orders.orders (order_number);
CREATE INDEX IF NOT EXISTS idx_orders_user_created ON orders.orders (user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_orders_status ON orders.orders (status);
"""

# Columns an admin status update may touch alongside status
STATUS_UPDATE_FIELDS = ("tracking_number", "admin_notes", "payment_status")


class OrderRepository:
    """
    Repository for order data operations

    Handles all database operations for orders using PostgresClient.
    Write methods accept ``conn`` so they can join a caller's transaction.
    """

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[PostgresClient] = None):
        """Initialize Order Repository with PostgresClient"""
        if config is None:
            config = ConfigManager("order_service")

        self.db = db or PostgresClient(service_name=config.service_name)

        self.schema = "orders"  # Using "orders" instead of "order" (reserved keyword)
        self.orders_table = "orders"

        logger.info("OrderRepository initialized with PostgresClient")

    @property
    def _table(self) -> str:
        return f'"{self.schema}".{self.orders_table}'

    def transaction(self):
        """Unit of work shared with the inventory repository"""
        return self.db.transaction()

    async def ensure_schema(self):
        """Create the orders schema and table when missing"""
        await self.db.execute(SCHEMA_SQL)

    async def create_order(self, order: Order, conn: Optional[asyncpg.Connection] = None) -> Order:
        """Insert a new order"""
        query = f'''
            INSERT INTO {self._table} (
                order_id, order_number, user_id, order_type, line_items,
                subtotal, tax, shipping_cost, total_amount, currency,
                status, payment_status, payment_method, transaction_id,
                delivery_details, notes, created_at, updated_at
            ) VALUES (
                $1, $2, $3, $4, $5, $6, $7, $8, $9, $10,
                $11, $12, $13, $14, $15, $16, $17, $18
            )
            RETURNING *
        '''
        params = [
            order.order_id,
            order.order_number,
            order.user_id,
            order.order_type.value,
            [line.model_dump(mode="json") for line in order.line_items],
            order.subtotal,
            order.tax,
            order.shipping_cost,
            order.total_amount,
            order.currency,
            order.status.value,
            order.payment_status.value,
            order.payment_method.value,
            order.transaction_id,
            order.delivery_details.model_dump(mode="json") if order.delivery_details else None,
            order.notes,
            order.created_at,
            order.updated_at,
        ]

        result = await self.db.query_row(query, params, conn=conn)
        logger.info(f"Order {order.order_number} inserted for user {order.user_id}")
        return self._dict_to_order(result)

    async def get_order(
        self,
        order_id: str,
        conn: Optional[asyncpg.Connection] = None,
        for_update: bool = False
    ) -> Optional[Order]:
        """Get order by ID"""
        query = f'SELECT * FROM {self._table} WHERE order_id = $1'
        if for_update:
            query += ' FOR UPDATE'

        result = await self.db.query_row(query, [order_id], conn=conn)
        return self._dict_to_order(result) if result else None

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        conn: Optional[asyncpg.Connection] = None,
        **fields: Any
    ) -> Optional[Order]:
        """Update status and any of tracking_number / admin_notes / payment_status"""
        update_data: Dict[str, Any] = {
            "status": status.value,
            "updated_at": datetime.now(timezone.utc),
        }
        for key in STATUS_UPDATE_FIELDS:
            value = fields.get(key)
            if value is not None:
                update_data[key] = value.value if isinstance(value, PaymentStatus) else value

        return await self._update(order_id, update_data, conn)

    async def mark_cancelled(
        self,
        order_id: str,
        reason: str,
        conn: Optional[asyncpg.Connection] = None
    ) -> Optional[Order]:
        """Set status cancelled with reason and timestamp"""
        now = datetime.now(timezone.utc)
        return await self._update(order_id, {
            "status": OrderStatus.CANCELLED.value,
            "cancel_reason": reason,
            "cancelled_at": now,
            "updated_at": now,
        }, conn)

    async def update_delivery_details(
        self,
        order_id: str,
        details: DeliveryDetails,
        conn: Optional[asyncpg.Connection] = None
    ) -> Optional[Order]:
        """Replace delivery details"""
        return await self._update(order_id, {
            "delivery_details": details.model_dump(mode="json"),
            "updated_at": datetime.now(timezone.utc),
        }, conn)

    async def list_user_orders(
        self,
        user_id: str,
        status: Optional[OrderStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Order]:
        """Orders placed by one user, newest first"""
        conditions = ["user_id = $1"]
        params: List[Any] = [user_id]

        if status:
            params.append(status.value)
            conditions.append(f"status = ${len(params)}")

        return await self._list(conditions, params, limit, offset)

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Order]:
        """List orders with filtering"""
        conditions: List[str] = []
        params: List[Any] = []

        if status:
            params.append(status.value)
            conditions.append(f"status = ${len(params)}")

        if order_type:
            params.append(order_type.value)
            conditions.append(f"order_type = ${len(params)}")

        return await self._list(conditions, params, limit, offset)

    async def delete_order(self, order_id: str, conn: Optional[asyncpg.Connection] = None) -> bool:
        """Delete an order row"""
        query = f'DELETE FROM {self._table} WHERE order_id = $1 RETURNING order_id'
        result = await self.db.query_row(query, [order_id], conn=conn)
        return result is not None

    async def get_user_order_stats(self, user_id: str) -> List[OrderStatusBreakdown]:
        """Order count and summed total per status for one user"""
        query = f'''
            SELECT status, COUNT(*) AS count, COALESCE(SUM(total_amount), 0) AS total_amount
            FROM {self._table}
            WHERE user_id = $1
            GROUP BY status
            ORDER BY status
        '''
        results = await self.db.query(query, [user_id])
        return [
            OrderStatusBreakdown(
                status=OrderStatus(row["status"]),
                count=row["count"],
                total_amount=Decimal(str(row["total_amount"])),
            )
            for row in results
        ]

    async def _list(self, conditions: List[str], params: List[Any], limit: int, offset: int) -> List[Order]:
        where_clause = " AND ".join(conditions) if conditions else "TRUE"
        params = params + [limit, offset]
        query = f'''
            SELECT * FROM {self._table}
            WHERE {where_clause}
            ORDER BY created_at DESC
            LIMIT ${len(params) - 1} OFFSET ${len(params)}
        '''
        results = await self.db.query(query, params)
        return [self._dict_to_order(row) for row in results]

    async def _update(
        self,
        order_id: str,
        update_data: Dict[str, Any],
        conn: Optional[asyncpg.Connection]
    ) -> Optional[Order]:
        # Build SET clause
        set_clauses = []
        params = []
        for key, value in update_data.items():
            params.append(value)
            set_clauses.append(f"{key} = ${len(params)}")

        params.append(order_id)
        query = f'''
            UPDATE {self._table}
            SET {", ".join(set_clauses)}
            WHERE order_id = ${len(params)}
            RETURNING *
        '''
        result = await self.db.query_row(query, params, conn=conn)
        return self._dict_to_order(result) if result else None

    def _dict_to_order(self, data: Dict[str, Any]) -> Order:
        """Convert dictionary to Order model"""
        line_items = data.get("line_items")
        if isinstance(line_items, str):
            line_items = json.loads(line_items)

        delivery = data.get("delivery_details")
        if isinstance(delivery, str):
            delivery = json.loads(delivery)

        return Order(
            order_id=data["order_id"],
            order_number=data["order_number"],
            user_id=data["user_id"],
            order_type=OrderType(data["order_type"]),
            line_items=[OrderLineItem(**line) for line in line_items or []],
            subtotal=Decimal(str(data["subtotal"])),
            tax=Decimal(str(data["tax"])),
            shipping_cost=Decimal(str(data["shipping_cost"])),
            total_amount=Decimal(str(data["total_amount"])),
            currency=data.get("currency") or "USD",
            status=OrderStatus(data["status"]),
            payment_status=PaymentStatus(data["payment_status"]),
            payment_method=PaymentMethod(data["payment_method"]),
            transaction_id=data.get("transaction_id"),
            delivery_details=DeliveryDetails(**delivery) if delivery else None,
            notes=data.get("notes"),
            tracking_number=data.get("tracking_number"),
            admin_notes=data.get("admin_notes"),
            cancel_reason=data.get("cancel_reason"),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            cancelled_at=data.get("cancelled_at"),
        )

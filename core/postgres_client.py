"""
PostgreSQL Client Wrapper for the commerce services

Centralized asyncpg pool wrapper.
Provides configuration lookup and a consistent transactional access pattern.

Usage:
    from core.postgres_client import get_postgres_client

    # Get client instance
    db = await get_postgres_client("order_service")

    # Single statements
    row = await db.query_row("SELECT * FROM orders.orders WHERE order_id = $1", [order_id])

    # Atomic unit spanning several statements
    async with db.transaction() as conn:
        await conn.execute("UPDATE ...", ...)
        await conn.execute("INSERT ...", ...)
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

logger = logging.getLogger(__name__)


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSONB columns into Python objects"""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class PostgresClient:
    """
    PostgreSQL pool wrapper.

    Wraps an asyncpg pool and provides:
    - Configuration lookup for host/port/credentials
    - Lazy pool creation
    - transaction() for all-or-nothing units of work
    """

    def __init__(
        self,
        service_name: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            host: PostgreSQL host (defaults to env/config)
            port: PostgreSQL port (defaults to 5432)
            database: Database name
            username: Database username
            password: Database password
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name

        config = ConfigManager(service_name)
        infra = config.settings.infrastructure
        discovered_host, discovered_port = config.discover_service(
            service_name="postgres_service",
            default_host=infra.postgres_host,
            default_port=infra.postgres_port,
            env_host_key="POSTGRES_HOST",
            env_port_key="POSTGRES_PORT",
        )

        self.host = host or discovered_host
        self.port = port or discovered_port
        self.database = database or infra.postgres_db
        self.username = username or infra.postgres_user
        self.password = password or infra.postgres_password
        self.min_size = min_size or infra.postgres_min_pool
        self.max_size = max_size or infra.postgres_max_pool

        self._pool: Optional[asyncpg.Pool] = None

        logger.info(f"PostgreSQL client initialized for {service_name}: {self.host}:{self.port}/{self.database}")

    async def connect(self) -> asyncpg.Pool:
        """Create the pool on first use"""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.username,
                password=self.password,
                min_size=self.min_size,
                max_size=self.max_size,
                init=_init_connection,
            )
            logger.info(f"PostgreSQL pool ready for {self.service_name}")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a pooled connection outside of any explicit transaction"""
        pool = await self.connect()
        async with pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Run a unit of work in a single database transaction.

        Commits when the block exits normally, rolls back on any exception
        and re-raises it.
        """
        pool = await self.connect()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> Optional[Dict[str, Any]]:
        """Check database health"""
        try:
            async with self.acquire() as conn:
                version = await conn.fetchval("SELECT version()")
            return {"healthy": True, "version": version}
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return {"healthy": False, "error": str(e)}

    async def query(self, sql: str, params: Optional[List[Any]] = None,
                    conn: Optional[asyncpg.Connection] = None) -> List[Dict[str, Any]]:
        """Execute query and return results"""
        if conn is not None:
            rows = await conn.fetch(sql, *(params or []))
        else:
            async with self.acquire() as own:
                rows = await own.fetch(sql, *(params or []))
        return [dict(r) for r in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None,
                        conn: Optional[asyncpg.Connection] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return single row"""
        if conn is not None:
            row = await conn.fetchrow(sql, *(params or []))
        else:
            async with self.acquire() as own:
                row = await own.fetchrow(sql, *(params or []))
        return dict(row) if row else None

    async def execute(self, sql: str, params: Optional[List[Any]] = None,
                      conn: Optional[asyncpg.Connection] = None) -> str:
        """Execute SQL statement, returning the status tag (e.g. 'UPDATE 1')"""
        if conn is not None:
            return await conn.execute(sql, *(params or []))
        async with self.acquire() as own:
            return await own.execute(sql, *(params or []))

    async def close(self):
        """Close the pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")


# Singleton instances per service
_postgres_clients: Dict[str, PostgresClient] = {}


async def get_postgres_client(
    service_name: str,
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    **kwargs,
) -> PostgresClient:
    """
    Get or create PostgreSQL client for a service.

    Args:
        service_name: Service name
        host: Optional host override
        port: Optional port override
        database: Optional database override
        **kwargs: Additional client options

    Returns:
        PostgresClient instance
    """
    global _postgres_clients

    if service_name not in _postgres_clients:
        client = PostgresClient(
            service_name=service_name,
            host=host,
            port=port,
            database=database,
            **kwargs,
        )
        _postgres_clients[service_name] = client

    return _postgres_clients[service_name]

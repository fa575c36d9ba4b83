"""
Inventory Microservice

Responsibilities:
- Own the stock counters for sellable and rentable products
- Stock level lookups
- Low-stock reporting
"""

from fastapi import FastAPI, HTTPException, Depends, status, Query, Path
import uvicorn
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from core.config_manager import ConfigManager
from core.errors import ServiceError, service_error_handler
from core.logger import setup_service_logger
from core.postgres_client import get_postgres_client

from .inventory_service import InventoryService
from .models import LowStockResponse, ProductKind, StockLevelResponse
from .routes_registry import SERVICE_METADATA, get_route_summary

# Initialize configuration
config_manager = ConfigManager("inventory_service")
config = config_manager.get_service_config()

logger = setup_service_logger("inventory_service")


class InventoryMicroservice:
    """Inventory microservice core class"""

    def __init__(self):
        self.inventory_service: Optional[InventoryService] = None
        self.db = None

    async def initialize(self):
        """Open the database pool and build the service"""
        from .factory import create_inventory_service

        self.db = await get_postgres_client("inventory_service")
        self.inventory_service = create_inventory_service(config=config_manager, db=self.db)
        await self.inventory_service.repository.ensure_schema()
        logger.info("Inventory microservice initialized successfully")

    async def shutdown(self):
        """Close the database pool"""
        if self.db:
            await self.db.close()
        logger.info("Inventory microservice shutdown completed")


# Global microservice instance
inventory_microservice = InventoryMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    await inventory_microservice.initialize()
    yield
    await inventory_microservice.shutdown()


app = FastAPI(
    title="Inventory Service",
    description="Stock counters for sellable and rentable products",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan
)

app.add_exception_handler(ServiceError, service_error_handler)


def get_inventory_service() -> InventoryService:
    """Get inventory service instance"""
    if not inventory_microservice.inventory_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inventory service not initialized"
        )
    return inventory_microservice.inventory_service


@app.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": config.service_name,
        "port": config.service_port,
        "version": SERVICE_METADATA["version"],
        "routes": get_route_summary(),
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/api/v1/inventory/low-stock", response_model=LowStockResponse)
async def list_low_stock(
    threshold: Optional[int] = Query(None, ge=0, description="Defaults to the configured threshold"),
    inventory_service: InventoryService = Depends(get_inventory_service)
):
    """Products at or below the low-stock threshold"""
    return await inventory_service.list_low_stock(threshold)


@app.get("/api/v1/inventory/{kind}/{product_id}", response_model=StockLevelResponse)
async def get_stock(
    kind: ProductKind = Path(..., description="sellable or rentable"),
    product_id: str = Path(..., description="Product ID"),
    inventory_service: InventoryService = Depends(get_inventory_service)
):
    """Stock level for one product"""
    return await inventory_service.get_stock(product_id, kind)


if __name__ == "__main__":
    config_manager.print_config_summary()

    uvicorn.run(
        "microservices.inventory_service.main:app",
        host=config.service_host,
        port=config.service_port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )

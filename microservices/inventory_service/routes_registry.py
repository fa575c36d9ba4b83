"""
Inventory Service Routes Registry

Defines service metadata and routes exposed by the inventory service.
"""

SERVICE_METADATA = {
    "service_name": "inventory_service",
    "version": "1.0.0",
    "tags": ['inventory', 'v1'],
    "capabilities": ['stock_lookup', 'low_stock_report'],
}

ROUTES = [
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/inventory/low-stock", "methods": ["GET"], "description": "Products at or below the low-stock threshold"},
    {"path": "/api/v1/inventory/{kind}/{product_id}", "methods": ["GET"], "description": "Stock level for one product"},
]


def get_route_summary():
    """Route metadata reported by the health endpoint"""
    return {
        "route_count": len(ROUTES),
        "routes": [r["path"] for r in ROUTES],
        "api_version": "v1",
        "base_path": "/api/v1/inventory",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]

"""
Order Service Routes Registry
Defines all API routes exposed by the order service
"""

from typing import List, Dict, Any

SERVICE_METADATA = {
    "service_name": "order_service",
    "version": "1.0.0",
    "tags": ["v1", "order", "commerce"],
    "capabilities": [
        "order_placement",
        "inventory_reservation",
        "order_cancellation",
        "order_lifecycle",
        "order_statistics",
    ],
}

SERVICE_ROUTES = [
    {
        "path": "/health",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Service health check"
    },
    {
        "path": "/health/detailed",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Detailed health check"
    },
    # Order Management
    {
        "path": "/api/v1/orders",
        "methods": ["GET", "POST"],
        "auth_required": True,
        "description": "List orders (admin) / place order"
    },
    {
        "path": "/api/v1/orders/from-cart",
        "methods": ["POST"],
        "auth_required": True,
        "description": "Place order from the caller's cart"
    },
    {
        "path": "/api/v1/orders/{order_id}",
        "methods": ["GET", "DELETE"],
        "auth_required": True,
        "description": "Get order / delete order (admin)"
    },
    {
        "path": "/api/v1/orders/{order_id}/cancel",
        "methods": ["POST"],
        "auth_required": True,
        "description": "Cancel order and restore stock"
    },
    {
        "path": "/api/v1/orders/{order_id}/status",
        "methods": ["PUT"],
        "auth_required": True,
        "description": "Update order status (admin)"
    },
    {
        "path": "/api/v1/orders/{order_id}/delivery",
        "methods": ["PUT"],
        "auth_required": True,
        "description": "Edit delivery details"
    },
    {
        "path": "/api/v1/users/me/orders",
        "methods": ["GET"],
        "auth_required": True,
        "description": "Caller's orders"
    },
    {
        "path": "/api/v1/users/me/orders/stats",
        "methods": ["GET"],
        "auth_required": True,
        "description": "Caller's order statistics"
    },
    {
        "path": "/api/v1/order/info",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Service information"
    },
]


def get_routes() -> List[Dict[str, Any]]:
    """All routes of the service"""
    return SERVICE_ROUTES


def get_route_summary() -> Dict[str, Any]:
    """Compact route metadata for the info endpoint"""
    return {
        "route_count": len(SERVICE_ROUTES),
        "base_path": "/api/v1/orders",
        "routes": [route["path"] for route in SERVICE_ROUTES],
        "auth_routes": [route["path"] for route in SERVICE_ROUTES if route["auth_required"]],
    }

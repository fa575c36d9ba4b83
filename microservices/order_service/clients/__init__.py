"""
Order Service Clients Module

HTTP clients for synchronous communication with other services
"""

from .notification_client import NotificationClient
from .cart_client import CartClient

__all__ = [
    "NotificationClient",
    "CartClient",
]

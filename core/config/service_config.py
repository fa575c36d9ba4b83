#!/usr/bin/env python3
"""Service configuration for peer services

Collaborators the order core calls over HTTP: the notification service
(email delivery) and the cart service.
"""
import os
from dataclasses import dataclass


def _bool(val: str) -> bool:
    return val.lower() == "true"


@dataclass
class ServiceConfig:
    """Peer service endpoints"""

    notification_service_url: str = "http://localhost:8206"
    cart_service_url: str = "http://localhost:8230"
    inventory_service_url: str = "http://localhost:8220"

    # ===========================================
    # API Gateway
    # ===========================================
    gateway_url: str = "http://localhost:9080"
    gateway_enabled: bool = False

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Load service configuration from environment variables"""
        return cls(
            notification_service_url=os.getenv("NOTIFICATION_SERVICE_URL", "http://localhost:8206"),
            cart_service_url=os.getenv("CART_SERVICE_URL", "http://localhost:8230"),
            inventory_service_url=os.getenv("INVENTORY_SERVICE_URL", "http://localhost:8220"),

            # Gateway
            gateway_url=os.getenv("GATEWAY_URL", "http://localhost:9080"),
            gateway_enabled=_bool(os.getenv("GATEWAY_ENABLED", "false")),
        )

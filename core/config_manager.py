"""
Configuration Manager

Per-service view over the global platform settings.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("order_service")
    config = config_manager.get_service_config()
    host, port = config_manager.discover_service(
        service_name="postgres_service",
        default_host="localhost",
        default_port=5432,
        env_host_key="POSTGRES_HOST",
        env_port_key="POSTGRES_PORT",
    )
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from core.config import PlatformConfig, get_settings

logger = logging.getLogger(__name__)

# Fixed port assignments per service
SERVICE_PORTS: Dict[str, int] = {
    "notification_service": 8206,
    "order_service": 8210,
    "inventory_service": 8220,
    "cart_service": 8230,
}


@dataclass
class ServiceRuntimeConfig:
    """Runtime settings for a single microservice"""
    service_name: str
    service_host: str
    service_port: int
    debug: bool
    log_level: str
    environment: str


class ConfigManager:
    """Service-scoped configuration access"""

    def __init__(self, service_name: str, settings: Optional[PlatformConfig] = None):
        self.service_name = service_name
        self.settings = settings or get_settings()

    def get_service_config(self) -> ServiceRuntimeConfig:
        """Resolve host/port/log level for this service"""
        env_prefix = self.service_name.upper()
        default_port = SERVICE_PORTS.get(self.service_name, self.settings.default_port)
        port_value = os.getenv(f"{env_prefix}_PORT")
        try:
            port = int(port_value) if port_value else default_port
        except ValueError:
            logger.warning(f"Invalid {env_prefix}_PORT={port_value!r}, using {default_port}")
            port = default_port

        return ServiceRuntimeConfig(
            service_name=self.service_name,
            service_host=os.getenv(f"{env_prefix}_HOST", self.settings.default_host),
            service_port=port,
            debug=self.settings.debug,
            log_level=self.settings.logging.log_level,
            environment=self.settings.environment,
        )

    def discover_service(
        self,
        service_name: str,
        default_host: str,
        default_port: int,
        env_host_key: Optional[str] = None,
        env_port_key: Optional[str] = None,
    ) -> Tuple[str, int]:
        """
        Resolve a dependency endpoint.

        Priority: environment variables -> defaults.
        """
        host = os.getenv(env_host_key) if env_host_key else None
        port_value = os.getenv(env_port_key) if env_port_key else None

        port = default_port
        if port_value:
            try:
                port = int(port_value)
            except ValueError:
                logger.warning(f"Invalid port for {service_name}: {port_value!r}")

        resolved = (host or default_host, port)
        logger.debug(f"Resolved {service_name} -> {resolved[0]}:{resolved[1]}")
        return resolved

    def print_config_summary(self) -> None:
        """Log the effective configuration for debugging"""
        config = self.get_service_config()
        infra = self.settings.infrastructure
        logger.info(f"=== {self.service_name} configuration ===")
        logger.info(f"  environment: {config.environment}")
        logger.info(f"  listen: {config.service_host}:{config.service_port}")
        logger.info(f"  postgres: {infra.postgres_host}:{infra.postgres_port}/{infra.postgres_db}")
        logger.info(f"  nats: {infra.nats_servers}")
        logger.info(f"  tax_rate: {self.settings.commerce.tax_rate}")
        logger.info(f"  low_stock_threshold: {self.settings.commerce.low_stock_threshold}")

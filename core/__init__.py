#!/usr/bin/env python3
"""
Core Module for the Camp Quest commerce microservices

Shared components used by every service in this repository.

COMPONENTS:
    - config/: dataclass configuration loaded from environment
    - config_manager.py: per-service configuration access
    - logger.py: logging setup
    - postgres_client.py: asyncpg pool with transactional units of work
    - nats_client.py: NATS JetStream event bus
    - service_client_base.py: base class for inter-service HTTP clients
    - auth_dependencies.py: FastAPI caller identity dependencies

USAGE:
    from core.config_manager import ConfigManager
    from core.postgres_client import get_postgres_client

    config = ConfigManager("order_service")
"""

__version__ = "1.0.0"

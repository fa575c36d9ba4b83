#!/usr/bin/env python3
"""Modular configuration system for the Camp Quest commerce services

Configuration hierarchy:
- infra_config: Infrastructure services (PostgreSQL, NATS)
- service_config: Peer services (notification, cart)
- commerce_config: Order placement tunables and the combined platform config
- logging_config: Logging configuration
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .service_config import ServiceConfig
from .commerce_config import CommerceConfig, PlatformConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = PlatformConfig.from_env()


def get_settings() -> PlatformConfig:
    """Get global settings instance"""
    return settings


def reload_settings() -> PlatformConfig:
    """Reload settings from environment"""
    global settings
    settings = PlatformConfig.from_env()
    return settings


__all__ = [
    # Main config
    'PlatformConfig',
    'get_settings',
    'reload_settings',
    'settings',
    # Sub-configs
    'LoggingConfig',
    'InfraConfig',
    'ServiceConfig',
    'CommerceConfig',
]

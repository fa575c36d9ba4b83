#!/usr/bin/env python3
"""Commerce platform configuration

Business tunables for order placement plus the combined settings object
shared by all services.
"""
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .service_config import ServiceConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


def _decimal(val: str, default: str) -> Decimal:
    try:
        return Decimal(val) if val else Decimal(default)
    except InvalidOperation:
        return Decimal(default)


@dataclass
class CommerceConfig:
    """Order placement tunables"""
    # Applied to the pre-tax subtotal when the caller supplies no tax
    tax_rate: Decimal = Decimal("0.08")
    # Post-decrement quantity at or below which an alert is sent
    low_stock_threshold: int = 5
    # Customers may edit delivery details for this long after placing
    delivery_edit_window_hours: int = 24
    # Upper bound for post-commit notification work
    notification_timeout_seconds: float = 5.0
    currency: str = "USD"

    @classmethod
    def from_env(cls) -> 'CommerceConfig':
        return cls(
            tax_rate=_decimal(os.getenv("ORDER_TAX_RATE", ""), "0.08"),
            low_stock_threshold=_int(os.getenv("LOW_STOCK_THRESHOLD", "5"), 5),
            delivery_edit_window_hours=_int(os.getenv("ORDER_EDIT_WINDOW_HOURS", "24"), 24),
            notification_timeout_seconds=_float(os.getenv("NOTIFICATION_TIMEOUT", "5"), 5.0),
            currency=os.getenv("ORDER_CURRENCY", "USD"),
        )


# ===========================================
# Main Platform Configuration
# ===========================================

@dataclass
class PlatformConfig:
    """Main platform configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False

    # Default service settings (each microservice overrides these)
    default_host: str = "0.0.0.0"
    default_port: int = 8000

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infrastructure: InfraConfig = field(default_factory=InfraConfig)
    services: ServiceConfig = field(default_factory=ServiceConfig)
    commerce: CommerceConfig = field(default_factory=CommerceConfig)

    @classmethod
    def from_env(cls) -> 'PlatformConfig':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),

            default_host=os.getenv("HOST", "0.0.0.0"),
            default_port=_int(os.getenv("PORT", "8000"), 8000),

            logging=LoggingConfig.from_env(),
            infrastructure=InfraConfig.from_env(),
            services=ServiceConfig.from_env(),
            commerce=CommerceConfig.from_env(),
        )

"""
Service Logger Setup

Configures the standard library logging tree once per service process.

Usage:
    from core.logger import setup_service_logger
    logger = setup_service_logger("order_service")
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig, get_settings

_configured = False


def setup_service_logger(service_name: str, config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure root handlers from LoggingConfig and return the service logger.

    Calling it more than once is harmless; handlers are only attached the
    first time.
    """
    global _configured

    config = config or get_settings().logging
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if not _configured:
        root = logging.getLogger()
        root.setLevel(level)
        formatter = logging.Formatter(config.log_format)

        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # asyncpg / nats are noisy at DEBUG
        logging.getLogger("asyncpg").setLevel(max(level, logging.INFO))
        logging.getLogger("nats").setLevel(max(level, logging.INFO))
        _configured = True

    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    return logger

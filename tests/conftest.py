"""
Root conftest.py - Global configuration for all test layers.

Test Layers:
    - component/  : Component tests (services and routes over in-memory stores)
    - integration/: Repositories against a live PostgreSQL (RUN_DB_TESTS=1)
    - unit/       : Unit tests (pure functions, no I/O)

Usage:
    pytest tests -v
    pytest tests -m unit -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any service imports read settings
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "requires_db: needs a live PostgreSQL")


def pytest_collection_modifyitems(config, items):
    """Skip tests that need infrastructure the run does not have"""
    skip_db = pytest.mark.skip(reason="PostgreSQL not available")

    for item in items:
        if "requires_db" in item.keywords and not os.getenv("RUN_DB_TESTS"):
            item.add_marker(skip_db)

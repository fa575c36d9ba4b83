"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── mocks/              Shared mock implementations
    ├── inventory_service/  Inventory service and routes
    └── order_service/      Order service, routes and clients

Usage:
    pytest tests/component -v
    pytest tests/component/order_service -v
"""
import os

import pytest

# Event bus and database are always mocked at this layer
os.environ["ENV"] = "testing"

from tests.component.mocks import MockEventBus, MockHttpClient, MockTransactionalDatabase


@pytest.fixture
def mock_db() -> MockTransactionalDatabase:
    """In-memory transactional store"""
    return MockTransactionalDatabase()


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Mock NATS event bus"""
    return MockEventBus()


@pytest.fixture
def mock_http_client() -> MockHttpClient:
    """Mock HTTP client for inter-service calls"""
    return MockHttpClient()

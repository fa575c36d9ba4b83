"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (database, NATS, HTTP).
"""

from .db_mock import MockTransactionalDatabase, MockTransaction
from .nats_mock import MockEventBus
from .http_mock import MockHttpClient, MockHttpResponse

# Service-specific mocks live in tests/component/{service}/mocks.py

__all__ = [
    'MockTransactionalDatabase',
    'MockTransaction',
    'MockEventBus',
    'MockHttpClient',
    'MockHttpResponse',
]

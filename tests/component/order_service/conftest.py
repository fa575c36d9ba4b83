"""
Component Test Fixtures for Order Service

OrderService wired to in-memory repositories that share one
transactional store, plus recording event bus and client fakes.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.config import CommerceConfig
from microservices.inventory_service.models import ProductKind
from microservices.order_service.models import (
    OrderLineItemRequest, PaymentInfo, PaymentMethod, PlaceOrderRequest
)
from microservices.order_service.order_service import OrderService

from .mocks import (
    MockCartClient,
    MockEventBus,
    MockInventoryRepository,
    MockNotificationClient,
    MockOrderRepository,
    MockTransactionalDatabase,
)

CUSTOMER_ID = "usr_customer_1"
OTHER_CUSTOMER_ID = "usr_customer_2"
ADMIN_ID = "usr_admin_1"


class FrozenClock:
    """Settable UTC clock"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db():
    return MockTransactionalDatabase()


@pytest.fixture
def inventory(db):
    repo = MockInventoryRepository(db)
    repo.set_product("prod_tent", ProductKind.SELLABLE, available_quantity=10, name="Tent", price=Decimal("50.00"))
    repo.set_product("prod_lamp", ProductKind.SELLABLE, available_quantity=20, name="Lamp", price=Decimal("12.50"))
    repo.set_product("rent_kayak", ProductKind.RENTABLE, available_quantity=3, name="Kayak", price=Decimal("40.00"))
    return repo


@pytest.fixture
def orders(db):
    return MockOrderRepository(db)


@pytest.fixture
def event_bus():
    return MockEventBus()


@pytest.fixture
def notifier():
    return MockNotificationClient()


@pytest.fixture
def cart():
    return MockCartClient()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def commerce_config():
    return CommerceConfig(
        tax_rate=Decimal("0.08"),
        low_stock_threshold=5,
        delivery_edit_window_hours=24,
        notification_timeout_seconds=0.5,
    )


@pytest.fixture
def service(orders, inventory, event_bus, notifier, cart, commerce_config, clock):
    return OrderService(
        repository=orders,
        inventory_repository=inventory,
        event_bus=event_bus,
        notification_client=notifier,
        cart_client=cart,
        config=commerce_config,
        clock=clock,
    )


def line(product_id: str, quantity: int = 1, kind: ProductKind = ProductKind.SELLABLE, **kwargs) -> OrderLineItemRequest:
    return OrderLineItemRequest(product_id=product_id, product_kind=kind, quantity=quantity, **kwargs)


def order_request(*lines: OrderLineItemRequest, tax=None, shipping_cost=None, **kwargs) -> PlaceOrderRequest:
    return PlaceOrderRequest(
        line_items=list(lines),
        payment=PaymentInfo(method=PaymentMethod.CARD, tax=tax, shipping_cost=shipping_cost),
        **kwargs
    )

"""
Order Placement Component Tests

OrderService.place_order / place_order_from_cart against in-memory
repositories sharing one transactional store.

Usage:
    pytest tests/component/order_service -v
"""
import asyncio
from decimal import Decimal

import httpx
import pytest

from microservices.inventory_service.models import AvailabilityStatus, ProductKind
from microservices.inventory_service.protocols import InsufficientStockError, ProductNotFoundError
from microservices.order_service.models import (
    CartItem, CartOrderRequest, DeliveryDetails, OrderStatus, OrderType,
    PaymentInfo, PaymentMethod, PaymentStatus
)
from microservices.order_service.protocols import (
    CartUnavailableError, InvalidRequestError, OrderPersistenceError, UnauthorizedError
)

from .conftest import CUSTOMER_ID, line, order_request

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


class TestPlaceOrder:
    """Happy-path placement"""

    async def test_reserves_stock_and_persists_order(self, service, inventory, orders):
        result = await service.place_order(
            CUSTOMER_ID, order_request(line("prod_tent", 2), line("prod_lamp", 3))
        )

        order = result.order
        assert result.success is True
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.order_type == OrderType.SALES
        assert order.user_id == CUSTOMER_ID
        assert order.order_id.startswith("order_")
        assert order.order_number.startswith("ORD")

        assert inventory.quantity("prod_tent") == 8
        assert inventory.quantity("prod_lamp") == 17
        assert orders.stored(order.order_id) is not None

    async def test_totals_use_default_tax_rate(self, service):
        result = await service.place_order(
            CUSTOMER_ID, order_request(line("prod_tent", 2), line("prod_lamp", 3))
        )

        order = result.order
        assert order.subtotal == Decimal("137.50")
        assert order.tax == Decimal("11.00")
        assert order.shipping_cost == Decimal("0.00")
        assert order.total_amount == Decimal("148.50")

    async def test_explicit_zero_tax_is_honoured(self, service):
        result = await service.place_order(
            CUSTOMER_ID, order_request(line("prod_tent", 1), tax=Decimal("0"), shipping_cost=Decimal("7.5"))
        )

        order = result.order
        assert order.tax == Decimal("0.00")
        assert order.shipping_cost == Decimal("7.50")
        assert order.total_amount == Decimal("57.50")

    async def test_prices_are_snapshotted_from_inventory(self, service, inventory):
        result = await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 1)))

        inventory.set_product("prod_tent", available_quantity=9, name="Tent v2", price=Decimal("99.00"))

        snapshot = result.order.line_items[0]
        assert snapshot.name == "Tent"
        assert snapshot.unit_price == Decimal("50.00")
        assert snapshot.subtotal == Decimal("50.00")

    async def test_rental_line_multiplies_by_rental_days(self, service):
        result = await service.place_order(
            CUSTOMER_ID, order_request(line("rent_kayak", 2, ProductKind.RENTABLE, rental_days=3))
        )

        order = result.order
        assert order.order_type == OrderType.RENTAL
        assert order.line_items[0].rental_days == 3
        assert order.subtotal == Decimal("240.00")

    async def test_mixed_sellable_and_rentable_is_rental(self, service):
        result = await service.place_order(
            CUSTOMER_ID,
            order_request(line("prod_tent", 1), line("rent_kayak", 1, ProductKind.RENTABLE))
        )

        assert result.order.order_type == OrderType.RENTAL
        # rental_days defaults to one day
        assert result.order.subtotal == Decimal("90.00")

    async def test_package_line_needs_no_inventory(self, service, inventory):
        result = await service.place_order(
            CUSTOMER_ID,
            order_request(
                line("pkg_weekend", 2, ProductKind.PACKAGE, unit_price=Decimal("150"), name="Weekend Trip"),
                line("prod_tent", 1),
            )
        )

        order = result.order
        assert order.order_type == OrderType.PACKAGE
        assert order.subtotal == Decimal("350.00")
        assert [adj.product_id for adj in result.stock_adjustments] == ["prod_tent"]
        assert inventory.quantity("prod_tent") == 9

    async def test_delivery_details_and_payment_are_stored(self, service):
        request = order_request(
            line("prod_tent", 1),
            delivery_details=DeliveryDetails(name="Ann", email="ann@example.com", city="Oslo"),
            notes="leave at the gate",
        )
        request.payment.transaction_id = "txn_123"

        order = (await service.place_order(CUSTOMER_ID, request)).order

        assert order.delivery_details.city == "Oslo"
        assert order.notes == "leave at the gate"
        assert order.payment_method == PaymentMethod.CARD
        assert order.transaction_id == "txn_123"

    async def test_stock_adjustments_are_reported(self, service):
        result = await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 4)))

        adjustment = result.stock_adjustments[0]
        assert adjustment.old_quantity == 10
        assert adjustment.new_quantity == 6
        assert adjustment.delta == -4

    async def test_rentable_sold_out_becomes_unavailable(self, service, inventory):
        await service.place_order(CUSTOMER_ID, order_request(line("rent_kayak", 3, ProductKind.RENTABLE)))

        product = inventory.product("rent_kayak", ProductKind.RENTABLE)
        assert product["available_quantity"] == 0
        assert product["availability_status"] == AvailabilityStatus.UNAVAILABLE
        assert product["total_quantity"] == 3


class TestPlaceOrderValidation:
    """Rejected requests leave everything untouched"""

    async def test_empty_order_rejected(self, service, orders):
        with pytest.raises(InvalidRequestError):
            await service.place_order(CUSTOMER_ID, order_request())

        assert orders.all_orders() == []

    async def test_missing_customer_rejected(self, service, inventory):
        with pytest.raises(UnauthorizedError):
            await service.place_order(None, order_request(line("prod_tent", 1)))

        assert inventory.quantity("prod_tent") == 10

    async def test_package_without_price_rejected(self, service):
        with pytest.raises(InvalidRequestError):
            await service.place_order(
                CUSTOMER_ID, order_request(line("pkg_weekend", 1, ProductKind.PACKAGE, name="Weekend Trip"))
            )

    async def test_unknown_product_rejected(self, service, inventory, orders, event_bus):
        with pytest.raises(ProductNotFoundError) as exc_info:
            await service.place_order(
                CUSTOMER_ID, order_request(line("prod_tent", 2), line("prod_missing", 1))
            )

        assert exc_info.value.product_id == "prod_missing"
        assert inventory.quantity("prod_tent") == 10
        assert orders.all_orders() == []
        await service.drain_background_tasks()
        event_bus.assert_no_events_published()

    async def test_first_unknown_product_in_request_order_is_reported(self, service):
        with pytest.raises(ProductNotFoundError) as exc_info:
            await service.place_order(
                CUSTOMER_ID, order_request(line("zz_missing", 1), line("aa_missing", 1))
            )

        assert exc_info.value.product_id == "zz_missing"

    async def test_inactive_product_counts_as_missing(self, service, inventory):
        inventory.set_product("prod_old", available_quantity=5, is_active=False)

        with pytest.raises(ProductNotFoundError):
            await service.place_order(CUSTOMER_ID, order_request(line("prod_old", 1)))

        assert inventory.quantity("prod_old") == 5

    async def test_wrong_kind_counts_as_missing(self, service):
        with pytest.raises(ProductNotFoundError):
            await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 1, ProductKind.RENTABLE)))

    async def test_insufficient_stock_is_all_or_nothing(self, service, inventory, orders):
        with pytest.raises(InsufficientStockError) as exc_info:
            await service.place_order(
                CUSTOMER_ID, order_request(line("prod_tent", 2), line("prod_lamp", 999))
            )

        error = exc_info.value
        assert error.product_id == "prod_lamp"
        assert error.available == 20
        assert error.requested == 999
        assert inventory.quantity("prod_tent") == 10
        assert inventory.quantity("prod_lamp") == 20
        assert orders.all_orders() == []

    async def test_repeated_lines_are_checked_against_combined_quantity(self, service, inventory):
        with pytest.raises(InsufficientStockError) as exc_info:
            await service.place_order(
                CUSTOMER_ID, order_request(line("prod_tent", 6), line("prod_tent", 6))
            )

        assert exc_info.value.requested == 12
        assert inventory.quantity("prod_tent") == 10

    async def test_repeated_lines_decrement_once_per_product(self, service, inventory):
        result = await service.place_order(
            CUSTOMER_ID, order_request(line("prod_tent", 3), line("prod_tent", 4))
        )

        assert len(result.order.line_items) == 2
        assert len(result.stock_adjustments) == 1
        assert inventory.quantity("prod_tent") == 3

    async def test_persistence_failure_rolls_back_stock(self, service, inventory, orders, db):
        db.fail_next_write("orders.orders", ConnectionError("connection reset"))

        with pytest.raises(OrderPersistenceError) as exc_info:
            await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 2), line("prod_lamp", 1)))

        assert exc_info.value.retryable is True
        assert inventory.quantity("prod_tent") == 10
        assert inventory.quantity("prod_lamp") == 20
        assert orders.all_orders() == []
        assert db.rollbacks == 1


class TestConcurrentPlacement:
    """Concurrent orders never oversell"""

    async def test_concurrent_orders_never_oversell(self, service, inventory, orders):
        results = await asyncio.gather(
            *[service.place_order(f"usr_{i}", order_request(line("prod_tent", 3))) for i in range(4)],
            return_exceptions=True
        )

        placed = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, InsufficientStockError)]
        assert len(placed) == 3
        assert len(rejected) == 1
        assert inventory.quantity("prod_tent") == 1
        assert len(orders.all_orders()) == 3

    async def test_last_unit_goes_to_exactly_one_order(self, service, inventory):
        inventory.set_product("prod_last", available_quantity=1, name="Last One")

        results = await asyncio.gather(
            service.place_order("usr_a", order_request(line("prod_last", 1))),
            service.place_order("usr_b", order_request(line("prod_last", 1))),
            return_exceptions=True
        )

        assert sum(1 for r in results if isinstance(r, InsufficientStockError)) == 1
        assert inventory.quantity("prod_last") == 0

    async def test_overlapping_multi_product_orders_complete(self, service, inventory):
        results = await asyncio.gather(
            service.place_order("usr_a", order_request(line("prod_tent", 1), line("prod_lamp", 1))),
            service.place_order("usr_b", order_request(line("prod_lamp", 1), line("prod_tent", 1))),
        )

        assert all(r.success for r in results)
        assert inventory.quantity("prod_tent") == 8
        assert inventory.quantity("prod_lamp") == 18


class TestPostCommitWork:
    """Alerts, confirmations and events after commit"""

    async def test_order_created_event_published(self, service, event_bus):
        result = await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 1)))
        await service.drain_background_tasks()

        event = event_bus.assert_event_published("order.created", {"order_id": result.order.order_id})
        assert event["data"]["total_amount"] == "54.00"
        assert event["source"] == "order_service"

    async def test_confirmation_sent(self, service, notifier):
        result = await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 1)))
        await service.drain_background_tasks()

        assert notifier.confirmations == [result.order.order_id]

    async def test_low_stock_alert_when_crossing_threshold(self, service, notifier, event_bus):
        await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 6), line("prod_lamp", 1)))
        await service.drain_background_tasks()

        assert notifier.low_stock_alerts == [
            {"product_id": "prod_tent", "product_name": "Tent", "current_quantity": 4}
        ]
        event_bus.assert_event_published("inventory.low_stock", {"product_id": "prod_tent", "threshold": 5})

    async def test_low_stock_alert_at_exact_threshold(self, service, notifier):
        await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 5)))
        await service.drain_background_tasks()

        assert [a["current_quantity"] for a in notifier.low_stock_alerts] == [5]

    async def test_no_alert_above_threshold(self, service, notifier, event_bus):
        await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 4)))
        await service.drain_background_tasks()

        assert notifier.low_stock_alerts == []
        event_bus.assert_no_events_published("inventory.low_stock")

    async def test_notification_failure_does_not_affect_order(self, service, notifier, orders, event_bus):
        notifier.set_error(RuntimeError("smtp down"))

        result = await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 8)))
        await service.drain_background_tasks()

        assert result.success is True
        assert orders.stored(result.order.order_id).status == OrderStatus.PENDING
        assert notifier.low_stock_alerts == []
        event_bus.assert_event_published("order.created")

    async def test_slow_notification_is_abandoned(self, service, notifier, orders, event_bus):
        notifier.set_delay(5)

        result = await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 8)))
        await asyncio.wait_for(service.drain_background_tasks(), timeout=3)

        assert orders.stored(result.order.order_id) is not None
        event_bus.assert_no_events_published("order.created")

    async def test_event_bus_failure_does_not_affect_order(self, service, event_bus, orders):
        event_bus.set_error(RuntimeError("nats unreachable"))

        result = await service.place_order(CUSTOMER_ID, order_request(line("prod_tent", 1)))
        await service.drain_background_tasks()

        assert orders.stored(result.order.order_id) is not None

    async def test_works_without_event_bus_or_notifier(self, orders, inventory, commerce_config):
        from microservices.order_service.order_service import OrderService

        bare = OrderService(repository=orders, inventory_repository=inventory, config=commerce_config)
        result = await bare.place_order(CUSTOMER_ID, order_request(line("prod_tent", 9)))
        await bare.drain_background_tasks()

        assert result.success is True
        assert inventory.quantity("prod_tent") == 1


class TestPlaceOrderFromCart:
    """Cart checkout"""

    @pytest.fixture
    def cart_request(self):
        return CartOrderRequest(payment=PaymentInfo(method=PaymentMethod.PAYPAL))

    async def test_cart_becomes_order_and_is_cleared(self, service, cart, inventory, cart_request):
        cart.set_cart(CUSTOMER_ID, [
            CartItem(product_id="prod_tent", product_kind=ProductKind.SELLABLE, quantity=2, price=Decimal("1.00")),
            CartItem(product_id="rent_kayak", product_kind=ProductKind.RENTABLE, quantity=1, rental_days=2),
        ])

        result = await service.place_order_from_cart(CUSTOMER_ID, cart_request)

        order = result.order
        assert order.order_type == OrderType.RENTAL
        assert order.payment_method == PaymentMethod.PAYPAL
        # Cart prices are ignored in favour of the catalog
        assert order.subtotal == Decimal("180.00")
        assert inventory.quantity("prod_tent") == 8
        assert inventory.quantity("rent_kayak", ProductKind.RENTABLE) == 2
        assert cart.cart(CUSTOMER_ID) == []

    async def test_empty_cart_rejected(self, service, cart_request):
        with pytest.raises(InvalidRequestError):
            await service.place_order_from_cart(CUSTOMER_ID, cart_request)

    async def test_unreachable_cart_is_retryable(self, service, cart, cart_request, inventory):
        cart.set_error(httpx.ConnectError("cart service down"))

        with pytest.raises(CartUnavailableError) as exc_info:
            await service.place_order_from_cart(CUSTOMER_ID, cart_request)

        assert exc_info.value.retryable is True
        assert inventory.quantity("prod_tent") == 10

    async def test_failed_placement_keeps_cart(self, service, cart, cart_request):
        cart.set_cart(CUSTOMER_ID, [
            CartItem(product_id="prod_tent", product_kind=ProductKind.SELLABLE, quantity=50),
        ])

        with pytest.raises(InsufficientStockError):
            await service.place_order_from_cart(CUSTOMER_ID, cart_request)

        assert len(cart.cart(CUSTOMER_ID)) == 1
        cart.assert_not_called("clear_cart")

    async def test_cart_clear_failure_keeps_order(self, service, cart, cart_request, orders):
        cart.set_cart(CUSTOMER_ID, [
            CartItem(product_id="prod_lamp", product_kind=ProductKind.SELLABLE, quantity=1),
        ])
        cart.fail_clear()

        result = await service.place_order_from_cart(CUSTOMER_ID, cart_request)

        assert orders.stored(result.order.order_id) is not None

    async def test_missing_customer_rejected(self, service, cart_request, cart):
        with pytest.raises(UnauthorizedError):
            await service.place_order_from_cart(None, cart_request)

        cart.assert_not_called("get_cart")

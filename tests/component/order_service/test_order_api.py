"""
Component Tests for Order API

FastAPI TestClient over the real routes with the OrderService wired to
in-memory repositories. Startup is skipped so no database is opened.
"""
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from microservices.order_service.main import app, get_order_service
from microservices.order_service.models import OrderStatus

from .conftest import ADMIN_ID, CUSTOMER_ID, OTHER_CUSTOMER_ID
from .mocks import make_order

pytestmark = pytest.mark.component

CUSTOMER = {"X-User-Id": CUSTOMER_ID}
OTHER_CUSTOMER = {"X-User-Id": OTHER_CUSTOMER_ID, "X-User-Role": "customer"}
ADMIN = {"X-User-Id": ADMIN_ID, "X-User-Role": "admin"}


@asynccontextmanager
async def _no_lifespan(app):
    yield


@pytest.fixture
def client(service, monkeypatch):
    monkeypatch.setattr(app.router, "lifespan_context", _no_lifespan)
    app.dependency_overrides[get_order_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def order_body(*items, **extra):
    return {
        "line_items": list(items),
        "payment": {"method": "card"},
        **extra,
    }


class TestHealthEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_service_info_lists_routes(self, client):
        response = client.get("/api/v1/order/info")

        assert response.status_code == 200
        assert response.json()["service_name"] == "order_service"


class TestPlaceOrderEndpoint:

    def test_place_order(self, client, inventory):
        response = client.post(
            "/api/v1/orders",
            json=order_body({"product_id": "prod_tent", "product_kind": "sellable", "quantity": 2}),
            headers=CUSTOMER,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["order"]["user_id"] == CUSTOMER_ID
        assert data["order"]["total_amount"] == "108.00"
        assert inventory.quantity("prod_tent") == 8

    def test_requires_identity(self, client, inventory):
        response = client.post(
            "/api/v1/orders",
            json=order_body({"product_id": "prod_tent", "product_kind": "sellable", "quantity": 2}),
        )

        assert response.status_code == 401
        assert inventory.quantity("prod_tent") == 10

    def test_empty_order_is_bad_request(self, client):
        response = client.post("/api/v1/orders", json=order_body(), headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_REQUEST"

    def test_zero_quantity_fails_validation(self, client):
        response = client.post(
            "/api/v1/orders",
            json=order_body({"product_id": "prod_tent", "product_kind": "sellable", "quantity": 0}),
            headers=CUSTOMER,
        )

        assert response.status_code == 422

    def test_insufficient_stock_is_conflict(self, client):
        response = client.post(
            "/api/v1/orders",
            json=order_body({"product_id": "prod_tent", "product_kind": "sellable", "quantity": 11}),
            headers=CUSTOMER,
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "INSUFFICIENT_STOCK"
        assert data["details"] == {"product_id": "prod_tent", "available": 10, "requested": 11}

    def test_unknown_product_is_not_found(self, client):
        response = client.post(
            "/api/v1/orders",
            json=order_body({"product_id": "prod_missing", "product_kind": "sellable", "quantity": 1}),
            headers=CUSTOMER,
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "PRODUCT_NOT_FOUND"

    def test_persistence_failure_is_retryable(self, client, db):
        db.fail_next_write("orders.orders", ConnectionError("connection reset"))

        response = client.post(
            "/api/v1/orders",
            json=order_body({"product_id": "prod_tent", "product_kind": "sellable", "quantity": 1}),
            headers=CUSTOMER,
        )

        assert response.status_code == 503
        assert response.json()["retryable"] is True


class TestOrderEndpoints:

    @pytest.fixture
    def stored(self, orders):
        order = make_order(user_id=CUSTOMER_ID)
        orders.set_order(order)
        return order

    def test_get_own_order(self, client, stored):
        response = client.get(f"/api/v1/orders/{stored.order_id}", headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["order_id"] == stored.order_id

    def test_get_other_users_order_forbidden(self, client, stored):
        response = client.get(f"/api/v1/orders/{stored.order_id}", headers=OTHER_CUSTOMER)

        assert response.status_code == 403

    def test_get_missing_order(self, client):
        response = client.get("/api/v1/orders/order_nope", headers=CUSTOMER)

        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_NOT_FOUND"

    def test_cancel_without_body(self, client, stored, inventory):
        response = client.post(f"/api/v1/orders/{stored.order_id}/cancel", headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["order"]["cancel_reason"] == "Cancelled by customer"
        assert inventory.quantity("prod_tent") == 12

    def test_cancel_with_reason(self, client, stored):
        response = client.post(
            f"/api/v1/orders/{stored.order_id}/cancel", json={"reason": "wrong size"}, headers=CUSTOMER
        )

        assert response.status_code == 200
        assert response.json()["order"]["cancel_reason"] == "wrong size"

    def test_cancel_twice_is_conflict(self, client, stored):
        client.post(f"/api/v1/orders/{stored.order_id}/cancel", headers=CUSTOMER)
        response = client.post(f"/api/v1/orders/{stored.order_id}/cancel", headers=CUSTOMER)

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_TRANSITION"

    def test_status_update_requires_admin(self, client, stored):
        response = client.put(
            f"/api/v1/orders/{stored.order_id}/status", json={"status": "processing"}, headers=CUSTOMER
        )

        assert response.status_code == 403

    def test_admin_status_update(self, client, stored):
        response = client.put(
            f"/api/v1/orders/{stored.order_id}/status",
            json={"status": "shipped", "tracking_number": "TRK-9"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["status"] == "shipped"
        assert order["tracking_number"] == "TRK-9"

    def test_admin_marks_order_paid_without_status_change(self, client, stored):
        response = client.put(
            f"/api/v1/orders/{stored.order_id}/status",
            json={"status": "pending", "payment_status": "completed"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["status"] == "pending"
        assert order["payment_status"] == "completed"

    def test_same_status_without_changes_is_conflict(self, client, stored):
        response = client.put(
            f"/api/v1/orders/{stored.order_id}/status", json={"status": "pending"}, headers=ADMIN
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_TRANSITION"

    def test_admin_deletes_open_order(self, client, stored, inventory):
        response = client.delete(f"/api/v1/orders/{stored.order_id}", headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert inventory.quantity("prod_tent") == 12
        assert client.get(f"/api/v1/orders/{stored.order_id}", headers=ADMIN).status_code == 404

    def test_delete_shipped_order_is_conflict(self, client, orders):
        orders.set_order(make_order(order_id="order_shipped", status=OrderStatus.SHIPPED))

        response = client.delete("/api/v1/orders/order_shipped", headers=ADMIN)

        assert response.status_code == 409
        assert response.json()["error_code"] == "ORDER_NOT_DELETABLE"

    def test_customer_cannot_delete(self, client, stored):
        response = client.delete(f"/api/v1/orders/{stored.order_id}", headers=CUSTOMER)

        assert response.status_code == 403

    def test_delivery_update(self, client, orders, clock):
        orders.set_order(make_order(user_id=CUSTOMER_ID, created_at=clock.now))

        response = client.put(
            "/api/v1/orders/order_test_123/delivery", json={"city": "Tromso"}, headers=CUSTOMER
        )

        assert response.status_code == 200
        assert response.json()["order"]["delivery_details"]["city"] == "Tromso"

    def test_delivery_update_rejects_bad_email(self, client, stored):
        response = client.put(
            f"/api/v1/orders/{stored.order_id}/delivery", json={"email": "not-an-email"}, headers=CUSTOMER
        )

        assert response.status_code == 422


class TestListEndpoints:

    def test_my_orders(self, client, orders):
        orders.set_order(make_order(order_id="order_a", user_id=CUSTOMER_ID))
        orders.set_order(make_order(order_id="order_b", user_id=OTHER_CUSTOMER_ID))

        response = client.get("/api/v1/users/me/orders", headers=CUSTOMER)

        assert response.status_code == 200
        data = response.json()
        assert [o["order_id"] for o in data["orders"]] == ["order_a"]
        assert data["has_next"] is False

    def test_my_orders_status_filter(self, client, orders):
        orders.set_order(make_order(order_id="order_a", user_id=CUSTOMER_ID))

        response = client.get("/api/v1/users/me/orders", params={"status": "shipped"}, headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_my_order_stats(self, client, orders):
        orders.set_order(make_order(order_id="order_a", user_id=CUSTOMER_ID))
        orders.set_order(make_order(order_id="order_b", user_id=CUSTOMER_ID, status=OrderStatus.CANCELLED))
        orders.set_order(make_order(order_id="order_c", user_id=OTHER_CUSTOMER_ID))

        response = client.get("/api/v1/users/me/orders/stats", headers=CUSTOMER)

        assert response.status_code == 200
        data = response.json()
        assert data["total_orders"] == 2
        assert data["total_spent"] == "108.00"
        assert [(b["status"], b["count"]) for b in data["status_breakdown"]] == [("cancelled", 1), ("pending", 1)]

    def test_my_order_stats_requires_identity(self, client):
        response = client.get("/api/v1/users/me/orders/stats")

        assert response.status_code == 401

    def test_admin_list(self, client, orders):
        orders.set_order(make_order(order_id="order_a", user_id=CUSTOMER_ID))
        orders.set_order(make_order(order_id="order_b", user_id=OTHER_CUSTOMER_ID))

        response = client.get("/api/v1/orders", params={"limit": 1}, headers=ADMIN)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["has_next"] is True

    def test_customer_cannot_list_all(self, client):
        response = client.get("/api/v1/orders", headers=CUSTOMER)

        assert response.status_code == 403


class TestServiceNotInitialized:

    def test_returns_503_without_service(self, monkeypatch):
        monkeypatch.setattr(app.router, "lifespan_context", _no_lifespan)
        app.dependency_overrides.clear()

        with TestClient(app) as test_client:
            response = test_client.get("/api/v1/orders/order_x", headers=CUSTOMER)

        assert response.status_code == 503

"""HTTP tests for customer ordering."""

import pytest

from conftest import auth_header, fetch_all, fetch_one
from water_delivery import notifications as notifications_service
from water_delivery.models import delivery_assignments, notifications, orders


@pytest.fixture
def shop(make_user, make_zone, make_product):
    return {
        "admin": make_user("admin"),
        "customer": make_user("customer", name="Ana Cruz"),
        "zone": make_zone(delivery_fee=50.0),
        "water": make_product(name="Purified Water (5 Gallon)", price=25.0, stock_quantity=200),
        "bottle": make_product(name="Slim Water Bottle (500ml)", category="other", price=15.0,
                               stock_quantity=1, unit="piece", low_stock_threshold=0),
    }


def place(client, shop, items, **extra):
    body = {"items": items, "zone_id": shop["zone"], "delivery_address": "12 Mabini St.", **extra}
    return client.post("/customer/orders", json=body, headers=auth_header(shop["customer"], "customer"))


def test_place_order_persists_and_notifies_admin(client, shop):
    response = place(client, shop, [{"product_id": shop["water"], "quantity": 2}])

    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["subtotal"] == 50.0
    assert order["total_amount"] == 50.0
    assert order["delivery_fee"] == 50.0
    assert order["customer"]["name"] == "Ana Cruz"
    assert order["items"][0]["product"]["name"] == "Purified Water (5 Gallon)"
    assert order["delivery_assignment"]["status"] == "pending"

    admin_notes = fetch_all(notifications, notifications.c.user_id == shop["admin"])
    assert len(admin_notes) == 1
    assert admin_notes[0]["message"] == f"Order #{order['id']} placed by Ana Cruz - ₱50.00"


def test_insufficient_stock_is_rejected(client, shop):
    response = place(client, shop, [{"product_id": shop["bottle"], "quantity": 3}])

    assert response.status_code == 422
    assert response.json()["detail"] == "Insufficient stock for Slim Water Bottle (500ml). Available: 1"
    assert fetch_all(orders) == []
    assert fetch_all(notifications) == []


def test_unknown_zone_is_not_found(client, shop):
    shop = {**shop, "zone": 999}
    response = place(client, shop, [{"product_id": shop["water"], "quantity": 1}])

    assert response.status_code == 404


def test_empty_items_fail_validation(client, shop):
    assert place(client, shop, []).status_code == 422


def test_requires_authentication(client, shop):
    assert client.get("/customer/orders").status_code == 401
    bad_token = client.get("/customer/orders", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad_token.status_code == 401


def test_requires_customer_role(client, shop):
    response = client.get("/customer/orders", headers=auth_header(shop["admin"], "admin"))
    assert response.status_code == 403


def test_reaction_failure_returns_500_but_keeps_order(client, shop, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(notifications_service, "notify_admins", broken)

    response = place(client, shop, [{"product_id": shop["water"], "quantity": 1}])

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert len(fetch_all(orders)) == 1


def test_list_and_show_own_orders(client, shop, make_user):
    first = place(client, shop, [{"product_id": shop["water"], "quantity": 1}]).json()
    second = place(client, shop, [{"product_id": shop["water"], "quantity": 2}]).json()
    headers = auth_header(shop["customer"], "customer")

    listed = client.get("/customer/orders", headers=headers).json()
    assert [o["id"] for o in listed] == [second["id"], first["id"]]

    shown = client.get(f"/customer/orders/{first['id']}", headers=headers)
    assert shown.status_code == 200

    stranger = make_user("customer")
    forbidden = client.get(f"/customer/orders/{first['id']}", headers=auth_header(stranger, "customer"))
    assert forbidden.status_code == 403


def test_cancel_pending_order(client, shop):
    order = place(client, shop, [{"product_id": shop["water"], "quantity": 1}]).json()

    response = client.post(
        f"/customer/orders/{order['id']}/cancel", headers=auth_header(shop["customer"], "customer")
    )

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assignment = fetch_all(delivery_assignments)[0]
    assert assignment["status"] == "cancelled"
    assert assignment["cancellation_reason"] == "Cancelled by customer"


def test_cancel_non_pending_order_is_rejected(client, shop, make_order):
    order_id, _ = make_order(shop["customer"], shop["zone"], [(shop["water"], 1, 25.0)], status="confirmed")

    response = client.post(
        f"/customer/orders/{order_id}/cancel", headers=auth_header(shop["customer"], "customer")
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Only pending orders can be cancelled."
    assert fetch_one(orders, order_id)["status"] == "confirmed"


def test_trace_id_is_echoed(client, shop):
    response = client.get("/products", headers={"X-Trace-Id": "trace-123"})

    assert response.headers["X-Trace-Id"] == "trace-123"


def test_blank_delivery_address_fails_validation(client, shop):
    response = place(client, shop, [{"product_id": shop["water"], "quantity": 1}], delivery_address="")

    assert response.status_code == 422
    assert fetch_all(orders) == []

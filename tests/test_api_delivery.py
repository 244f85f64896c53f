"""HTTP tests for the delivery staff flow, including the delivered cascade."""

import pytest

from conftest import auth_header, fetch_all, fetch_one
from water_delivery.models import (
    delivery_assignments, inventory_logs, loyalty_point_logs, notifications, orders, products, users,
)


@pytest.fixture
def route(make_user, make_zone, make_product, make_order):
    customer = make_user("customer", name="Ana Cruz", points_balance=25)
    water = make_product(name="Purified Water (5 Gallon)", price=25.0, stock_quantity=200)
    bottle = make_product(name="Slim Water Bottle (500ml)", category="other", price=15.0,
                          stock_quantity=500, unit="piece", low_stock_threshold=100)
    zone = make_zone()
    order_id, assignment_id = make_order(customer, zone, [(water, 3, 25.0), (bottle, 2, 15.0)])
    return {
        "admin": make_user("admin"),
        "rider": make_user("delivery", name="Demo Rider"),
        "other_rider": make_user("delivery"),
        "customer": customer,
        "water": water,
        "bottle": bottle,
        "order": order_id,
        "assignment": assignment_id,
    }


def rider_headers(route, key="rider"):
    return auth_header(route[key], "delivery")


def accept(client, route, key="rider"):
    return client.post(f"/delivery/assignments/{route['assignment']}/accept", headers=rider_headers(route, key))


def set_status(client, route, status, key="rider"):
    return client.put(
        f"/delivery/assignments/{route['assignment']}/status",
        json={"status": status},
        headers=rider_headers(route, key),
    )


def test_queue_lists_unclaimed_deliveries(client, route):
    queue = client.get("/delivery/queue", headers=rider_headers(route)).json()

    assert queue["assigned"] == []
    assert [a["id"] for a in queue["unassigned"]] == [route["assignment"]]
    assert queue["unassigned"][0]["order"]["customer"]["name"] == "Ana Cruz"


def test_accept_confirms_order_and_tells_customer(client, route):
    response = accept(client, route)

    assert response.status_code == 200
    assert response.json()["status"] == "assigned"
    assert response.json()["delivery_staff_id"] == route["rider"]
    assert fetch_one(orders, route["order"])["status"] == "confirmed"

    customer_notes = fetch_all(notifications, notifications.c.user_id == route["customer"])
    assert [n["title"] for n in customer_notes] == ["Order Confirmed"]
    assert customer_notes[0]["type"] == "order_confirmed"


def test_accept_taken_delivery_is_rejected(client, route):
    accept(client, route)

    response = accept(client, route, key="other_rider")

    assert response.status_code == 422
    assert response.json()["detail"] == "This delivery is already assigned to another driver."


def test_in_transit_moves_order_out_for_delivery(client, route):
    accept(client, route)

    response = set_status(client, route, "in_transit")

    assert response.status_code == 200
    assert fetch_one(orders, route["order"])["status"] == "out_for_delivery"
    assert fetch_all(inventory_logs) == []
    titles = [n["title"] for n in fetch_all(notifications, notifications.c.user_id == route["customer"])]
    assert "Order Out for Delivery" in titles


def test_delivered_runs_the_completion_cascade(client, route):
    accept(client, route)
    set_status(client, route, "in_transit")

    response = set_status(client, route, "delivered")

    assert response.status_code == 200
    order = fetch_one(orders, route["order"])
    assert order["status"] == "delivered"
    assert order["payment_status"] == "paid"

    assert fetch_one(products, route["water"])["stock_quantity"] == 197
    assert fetch_one(products, route["bottle"])["stock_quantity"] == 498
    reasons = {log["reason"] for log in fetch_all(inventory_logs)}
    assert reasons == {f"Order #{route['order']} delivered"}

    assert fetch_one(users, route["customer"])["points_balance"] == 28
    ledger = fetch_all(loyalty_point_logs)
    assert [(entry["points_change"], entry["reference_id"]) for entry in ledger] == [(3, route["order"])]

    delivered_notes = fetch_all(
        notifications,
        notifications.c.user_id == route["customer"],
        notifications.c.type == "order_delivered",
    )
    assert len(delivered_notes) == 1
    assert delivered_notes[0]["message"] == f"Your order #{route['order']} has been delivered successfully!"


def test_only_the_assigned_rider_can_update(client, route):
    accept(client, route)

    response = set_status(client, route, "in_transit", key="other_rider")

    assert response.status_code == 403


def test_invalid_delivery_status_is_rejected(client, route):
    accept(client, route)

    assert set_status(client, route, "pending").status_code == 422
    assert set_status(client, route, "teleported").status_code == 422


def test_stats_count_deliveries(client, route):
    accept(client, route)
    set_status(client, route, "delivered")

    stats = client.get("/delivery/stats", headers=rider_headers(route)).json()

    assert stats == {"today_delivered": 1, "total_delivered": 1, "pending": 0}
    assert fetch_one(delivery_assignments, route["assignment"])["status"] == "delivered"


def test_customers_cannot_use_delivery_routes(client, route):
    response = client.get("/delivery/queue", headers=auth_header(route["customer"], "customer"))
    assert response.status_code == 403

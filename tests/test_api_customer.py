"""HTTP tests for customer loyalty, subscriptions and notifications."""

from datetime import datetime, timedelta

from conftest import auth_header, fetch_all, insert
from water_delivery.models import notifications, subscriptions


def note(user_id, title):
    return insert(
        notifications,
        user_id=user_id,
        title=title,
        message=title.lower(),
        type="order_status",
        is_read=False,
        created_at=datetime.utcnow(),
    )


def test_loyalty_summary_and_redeem(client, make_user):
    customer = make_user("customer", points_balance=150)
    headers = auth_header(customer, "customer")

    redeemed = client.post("/customer/loyalty/redeem", json={"points": 100}, headers=headers)
    summary = client.get("/customer/loyalty", headers=headers).json()

    assert redeemed.status_code == 200
    assert redeemed.json() == {"discount_amount": 50.0, "points_balance": 50}
    assert summary["points_balance"] == 50
    assert summary["history"][0]["points_change"] == -100


def test_redeem_with_insufficient_points(client, make_user):
    customer = make_user("customer", points_balance=120)

    response = client.post(
        "/customer/loyalty/redeem", json={"points": 200}, headers=auth_header(customer, "customer")
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Insufficient points balance."


def test_subscription_lifecycle(client, make_user, make_zone, make_product):
    customer = make_user("customer")
    headers = auth_header(customer, "customer")
    body = {
        "product_id": make_product(),
        "quantity": 2,
        "zone_id": make_zone(),
        "delivery_address": "12 Mabini St.",
        "frequency_days": 7,
    }

    created = client.post("/customer/subscriptions", json=body, headers=headers)
    assert created.status_code == 201
    subscription = created.json()
    assert subscription["is_active"] is True
    assert subscription["next_delivery_date"] == (datetime.utcnow().date() + timedelta(days=7)).isoformat()

    toggled = client.post(f"/customer/subscriptions/{subscription['id']}/toggle", headers=headers).json()
    assert toggled["is_active"] is False

    listed = client.get("/customer/subscriptions", headers=headers).json()
    assert [s["id"] for s in listed] == [subscription["id"]]

    deleted = client.delete(f"/customer/subscriptions/{subscription['id']}", headers=headers)
    assert deleted.status_code == 200
    assert fetch_all(subscriptions) == []


def test_subscription_frequency_must_be_supported(client, make_user, make_zone, make_product):
    customer = make_user("customer")
    body = {
        "product_id": make_product(),
        "quantity": 1,
        "zone_id": make_zone(),
        "delivery_address": "12 Mabini St.",
        "frequency_days": 10,
    }

    response = client.post("/customer/subscriptions", json=body, headers=auth_header(customer, "customer"))

    assert response.status_code == 422


def test_subscription_belongs_to_owner(client, make_user, make_zone, make_product):
    owner = make_user("customer")
    body = {
        "product_id": make_product(),
        "quantity": 1,
        "zone_id": make_zone(),
        "delivery_address": "12 Mabini St.",
        "frequency_days": 14,
    }
    subscription_id = client.post(
        "/customer/subscriptions", json=body, headers=auth_header(owner, "customer")
    ).json()["id"]

    intruder = auth_header(make_user("customer"), "customer")

    assert client.post(f"/customer/subscriptions/{subscription_id}/toggle", headers=intruder).status_code == 403
    assert client.delete(f"/customer/subscriptions/{subscription_id}", headers=intruder).status_code == 403


def test_notification_inbox(client, make_user):
    rider = make_user("delivery")
    headers = auth_header(rider, "delivery")
    first = note(rider, "A")
    note(rider, "B")

    page = client.get("/notifications", headers=headers).json()
    assert page["unread_count"] == 2
    assert page["total"] == 2

    assert client.post(f"/notifications/{first}/read", headers=headers).status_code == 200
    assert client.get("/notifications", headers=headers).json()["unread_count"] == 1

    assert client.post("/notifications/read-all", headers=headers).status_code == 200
    assert client.get("/notifications", headers=headers).json()["unread_count"] == 0


def test_cannot_read_someone_elses_notification(client, make_user):
    owner = make_user("customer")
    notification_id = note(owner, "A")

    response = client.post(
        f"/notifications/{notification_id}/read", headers=auth_header(make_user("customer"), "customer")
    )

    assert response.status_code == 403


def test_subscription_requires_delivery_address(client, make_user, make_zone, make_product):
    customer = make_user("customer")
    body = {
        "product_id": make_product(),
        "quantity": 1,
        "zone_id": make_zone(),
        "delivery_address": "",
        "frequency_days": 7,
    }

    response = client.post("/customer/subscriptions", json=body, headers=auth_header(customer, "customer"))

    assert response.status_code == 422
    assert fetch_all(subscriptions) == []

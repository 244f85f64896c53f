"""Tests for loyalty points."""

import pytest

from conftest import fetch_all, fetch_one, run
from water_delivery import loyalty
from water_delivery.errors import BusinessRuleError, NotFoundError
from water_delivery.models import loyalty_point_logs, users


def test_award_points_credits_balance_and_ledger(make_user):
    customer_id = make_user("customer", points_balance=25)

    run(loyalty.award_points(customer_id, 3, "Order #42 delivered", reference_id=42))

    assert fetch_one(users, customer_id)["points_balance"] == 28
    logs = fetch_all(loyalty_point_logs)
    assert len(logs) == 1
    assert (logs[0]["points_change"], logs[0]["reason"], logs[0]["reference_id"]) == (3, "Order #42 delivered", 42)


def test_award_zero_points_is_a_no_op(make_user):
    customer_id = make_user("customer", points_balance=10)

    run(loyalty.award_points(customer_id, 0, "nothing"))

    assert fetch_one(users, customer_id)["points_balance"] == 10
    assert fetch_all(loyalty_point_logs) == []


def test_award_missing_customer_raises():
    with pytest.raises(NotFoundError):
        run(loyalty.award_points(404, 5, "Order #1 delivered"))


def test_redeem_converts_points_to_discount(make_user):
    customer_id = make_user("customer", points_balance=250)

    result = run(loyalty.redeem_points(customer_id, 200))

    assert result == {"discount_amount": 100.0, "points_balance": 50}
    logs = fetch_all(loyalty_point_logs)
    assert logs[0]["points_change"] == -200
    assert logs[0]["reason"] == "Redeemed 200 points for ₱100.00 discount"


def test_redeem_below_minimum_is_rejected(make_user):
    customer_id = make_user("customer", points_balance=500)

    with pytest.raises(BusinessRuleError):
        run(loyalty.redeem_points(customer_id, 50))
    assert fetch_one(users, customer_id)["points_balance"] == 500


def test_redeem_more_than_balance_is_rejected(make_user):
    customer_id = make_user("customer", points_balance=120)

    with pytest.raises(BusinessRuleError, match="Insufficient points balance"):
        run(loyalty.redeem_points(customer_id, 200))


def test_history_is_newest_first(make_user):
    customer_id = make_user("customer")
    run(loyalty.award_points(customer_id, 1, "first"))
    run(loyalty.award_points(customer_id, 2, "second"))

    history = run(loyalty.history(customer_id))

    assert [h["reason"] for h in history] == ["second", "first"]

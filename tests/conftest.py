"""Pytest fixtures for water_delivery tests."""

import asyncio
import os
import tempfile
from datetime import datetime

_DB_DIR = tempfile.mkdtemp(prefix="water-delivery-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["USE_AWS"] = "false"

import pytest  # noqa: E402

from water_delivery.auth import create_jwt  # noqa: E402
from water_delivery.database import database, engine, reset_db  # noqa: E402
from water_delivery.models import (  # noqa: E402
    delivery_assignments, order_items, orders, products, users, zones,
)


def run(coro):
    """Await a coroutine on a fresh loop with the database connected."""
    async def runner():
        await database.connect()
        try:
            return await coro
        finally:
            await database.disconnect()
    return asyncio.run(runner())


def insert(table, **values) -> int:
    with engine.begin() as conn:
        return conn.execute(table.insert().values(**values)).inserted_primary_key[0]


def fetch_all(table, *conditions):
    with engine.connect() as conn:
        query = table.select().order_by(table.c.id)
        if conditions:
            query = query.where(*conditions)
        return [dict(r._mapping) for r in conn.execute(query)]


def fetch_one(table, row_id):
    rows = fetch_all(table, table.c.id == row_id)
    return rows[0] if rows else None


def auth_header(user_id: int, role: str) -> dict:
    return {"Authorization": f"Bearer {create_jwt(user_id, role)}"}


@pytest.fixture(autouse=True)
def fresh_db():
    reset_db()
    yield


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make(role="customer", name=None, address="12 Mabini St.", points_balance=0):
        counter["n"] += 1
        return insert(
            users,
            name=name or f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@example.com",
            phone="09170000000",
            address=address,
            role=role,
            points_balance=points_balance,
            created_at=datetime.utcnow(),
        )
    return _make


@pytest.fixture
def make_zone():
    def _make(name="Zone A", delivery_fee=30.0, is_active=True):
        return insert(zones, name=name, delivery_fee=delivery_fee, is_active=is_active)
    return _make


@pytest.fixture
def make_product():
    def _make(name="Purified Water (5 Gallon)", category="water", price=25.0, stock_quantity=200,
              low_stock_threshold=30, unit="gallon", is_active=True):
        return insert(
            products,
            name=name,
            category=category,
            price=price,
            stock_quantity=stock_quantity,
            unit=unit,
            low_stock_threshold=low_stock_threshold,
            is_active=is_active,
            created_at=datetime.utcnow(),
        )
    return _make


@pytest.fixture
def make_order():
    """Insert an order row with its line items and delivery assignment.

    `lines` is a list of (product_id, quantity, unit_price).
    """
    def _make(customer_id, zone_id, lines, status="pending", staff_id=None, assignment_status="pending"):
        now = datetime.utcnow()
        subtotal = sum(q * p for _, q, p in lines)
        order_id = insert(
            orders,
            customer_id=customer_id,
            status=status,
            payment_method="cod",
            payment_status="unpaid",
            zone_id=zone_id,
            delivery_address="12 Mabini St.",
            subtotal=subtotal,
            delivery_fee=30.0,
            total_amount=subtotal,
            created_at=now,
            updated_at=now,
        )
        for product_id, quantity, unit_price in lines:
            insert(
                order_items,
                order_id=order_id,
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=quantity * unit_price,
            )
        assignment_id = insert(
            delivery_assignments,
            order_id=order_id,
            delivery_staff_id=staff_id,
            status=assignment_status,
            created_at=now,
            updated_at=now,
        )
        return order_id, assignment_id
    return _make


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from water_delivery.main import app

    with TestClient(app) as test_client:
        yield test_client

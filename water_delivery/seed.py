# seed.py
"""Demo data: one user per role, four delivery zones and the product catalog.

    python -m water_delivery.seed
"""
from datetime import datetime

from sqlalchemy import select

from .auth import create_jwt
from .database import engine, init_db
from .models import products, users, zones

DEMO_USERS = [
    {"name": "JZ Waters Admin", "email": "admin@jzwaters.com", "phone": "09171234567",
     "address": "JZ Waters Main Office", "role": "admin", "points_balance": 0},
    {"name": "Demo Refiller", "email": "refiller@jzwaters.com", "phone": "09171234568",
     "address": "JZ Waters Station", "role": "refiller", "points_balance": 0},
    {"name": "Demo Rider", "email": "delivery@jzwaters.com", "phone": "09171234569",
     "address": "JZ Waters Station", "role": "delivery", "points_balance": 0},
    {"name": "Demo Customer", "email": "customer@jzwaters.com", "phone": "09171234570",
     "address": "123 Sample Street, Brgy. Test", "role": "customer", "points_balance": 25},
]

ZONES = [
    {"name": "Zone A - Nearby", "delivery_fee": 30.00, "is_active": True},
    {"name": "Zone B - Midrange", "delivery_fee": 50.00, "is_active": True},
    {"name": "Zone C - Far", "delivery_fee": 75.00, "is_active": True},
    {"name": "Zone D - Extended", "delivery_fee": 100.00, "is_active": True},
]

PRODUCTS = [
    {"name": "Purified Water (5 Gallon)", "category": "water", "price": 25.00, "stock_quantity": 200,
     "unit": "gallon", "low_stock_threshold": 30,
     "description": "Clean, purified drinking water in a 5-gallon container."},
    {"name": "Alkaline Water (5 Gallon)", "category": "water", "price": 35.00, "stock_quantity": 150,
     "unit": "gallon", "low_stock_threshold": 20,
     "description": "Premium alkaline water with pH 8.5+."},
    {"name": "Mineral Water (5 Gallon)", "category": "water", "price": 40.00, "stock_quantity": 100,
     "unit": "gallon", "low_stock_threshold": 15,
     "description": "Natural mineral water enriched with essential minerals."},
    {"name": "Purified Water (1 Gallon)", "category": "water", "price": 10.00, "stock_quantity": 300,
     "unit": "gallon", "low_stock_threshold": 50,
     "description": "Convenient 1-gallon purified water."},
    {"name": "Slim Water Bottle (500ml)", "category": "other", "price": 15.00, "stock_quantity": 500,
     "unit": "piece", "low_stock_threshold": 100,
     "description": "Portable 500ml water bottle."},
    {"name": "Water Dispenser (Hot & Cold)", "category": "other", "price": 3500.00, "stock_quantity": 15,
     "unit": "piece", "low_stock_threshold": 3,
     "description": "Top-loading water dispenser with hot and cold settings."},
]


def _first_or_create(conn, table, key: str, values: dict) -> int:
    existing = conn.execute(select(table.c.id).where(table.c[key] == values[key])).first()
    if existing:
        return existing.id
    return conn.execute(table.insert().values(**values)).inserted_primary_key[0]


def seed():
    init_db()
    now = datetime.utcnow()
    tokens = {}

    with engine.begin() as conn:
        for user in DEMO_USERS:
            user_id = _first_or_create(conn, users, "email", {**user, "created_at": now})
            tokens[user["role"]] = create_jwt(user_id, user["role"])
        print(f"✅ {len(DEMO_USERS)} demo users ready")

        for zone in ZONES:
            _first_or_create(conn, zones, "name", zone)
        print(f"✅ {len(ZONES)} zones ready")

        for product in PRODUCTS:
            _first_or_create(conn, products, "name", {**product, "is_active": True, "created_at": now})
        print(f"✅ {len(PRODUCTS)} products ready")

    print("🔑 Demo bearer tokens:")
    for role, token in tokens.items():
        print(f"  {role}: {token}")


if __name__ == "__main__":
    seed()

# catalog.py
"""Products, zones and user records managed by admins."""
from datetime import datetime
from typing import List, Optional

from .database import database, row_to_dict
from .errors import DuplicateError
from .models import products, users, zones
from .schemas import ProductCreate, UserCreate, ZoneCreate


# ------------------------- PRODUCTS -------------------------
async def list_products(category: Optional[str] = None, active_only: bool = False, search: Optional[str] = None) -> List[dict]:
    query = products.select().order_by(products.c.id)
    if category:
        query = query.where(products.c.category == category)
    if active_only:
        query = query.where(products.c.is_active == True)  # noqa: E712
    if search:
        query = query.where(products.c.name.ilike(f"%{search}%"))
    return [row_to_dict(r) for r in await database.fetch_all(query)]


async def create_product(body: ProductCreate) -> dict:
    values = body.model_dump()
    values["category"] = body.category.value
    product_id = await database.execute(products.insert().values(**values, created_at=datetime.utcnow()))
    return {"id": product_id, **values}


# ------------------------- ZONES -------------------------
async def list_zones(active_only: bool = False) -> List[dict]:
    query = zones.select().order_by(zones.c.id)
    if active_only:
        query = query.where(zones.c.is_active == True)  # noqa: E712
    return [row_to_dict(r) for r in await database.fetch_all(query)]


async def create_zone(body: ZoneCreate) -> dict:
    values = body.model_dump()
    zone_id = await database.execute(zones.insert().values(**values))
    return {"id": zone_id, **values}


# ------------------------- USERS -------------------------
async def list_users(role: Optional[str] = None) -> List[dict]:
    query = users.select().order_by(users.c.id)
    if role:
        query = query.where(users.c.role == role)
    return [row_to_dict(r) for r in await database.fetch_all(query)]


async def create_user(body: UserCreate) -> dict:
    existing = await database.fetch_one(users.select().where(users.c.email == body.email))
    if existing:
        raise DuplicateError("Email already registered")

    values = {
        "name": body.name,
        "email": body.email,
        "role": body.role.value,
        "phone": body.phone,
        "address": body.address,
        "points_balance": 0,
    }
    user_id = await database.execute(users.insert().values(**values, created_at=datetime.utcnow()))
    return {"id": user_id, **values}

# refills.py
"""Walk-in refill sales recorded by refiller staff."""
from datetime import datetime, date
from typing import List, Optional

from sqlalchemy import func, select

from .database import database, row_to_dict
from .models import refill_transactions
from .schemas import RefillCreate


def _day_bounds(day: date):
    return datetime.combine(day, datetime.min.time()), datetime.combine(day, datetime.max.time())


async def record(staff_id: int, body: RefillCreate) -> dict:
    values = {
        "staff_id": staff_id,
        "customer_name": body.customer_name or "Walk-in",
        "water_type": body.water_type.value,
        "gallons_count": body.gallons_count,
        "price_per_gallon": body.price_per_gallon,
        "total": body.gallons_count * body.price_per_gallon,
        "created_at": datetime.utcnow(),
    }
    transaction_id = await database.execute(refill_transactions.insert().values(**values))
    return {"id": transaction_id, **values}


async def list_for_staff(staff_id: int, day: Optional[date] = None, limit: int = 20, offset: int = 0) -> List[dict]:
    query = refill_transactions.select().where(refill_transactions.c.staff_id == staff_id)
    if day:
        start, end = _day_bounds(day)
        query = query.where(refill_transactions.c.created_at.between(start, end))
    query = query.order_by(refill_transactions.c.id.desc()).limit(limit).offset(offset)
    return [row_to_dict(r) for r in await database.fetch_all(query)]


async def summary(staff_id: int, day: Optional[date] = None) -> dict:
    start, end = _day_bounds(day or datetime.utcnow().date())
    row = await database.fetch_one(
        select(
            func.count().label("transactions"),
            func.coalesce(func.sum(refill_transactions.c.gallons_count), 0).label("gallons"),
            func.coalesce(func.sum(refill_transactions.c.total), 0).label("revenue"),
        )
        .select_from(refill_transactions)
        .where(refill_transactions.c.staff_id == staff_id)
        .where(refill_transactions.c.created_at.between(start, end))
    )
    data = row_to_dict(row)
    return {
        "transactions": int(data["transactions"]),
        "gallons": int(data["gallons"]),
        "revenue": float(data["revenue"]),
    }

# loyalty.py
import logging
from datetime import datetime
from typing import List, Optional

from .config import POINTS_PER_REDEMPTION_UNIT, DISCOUNT_PER_REDEMPTION_UNIT, MIN_REDEEM_POINTS
from .database import database, row_to_dict
from .errors import BusinessRuleError, NotFoundError
from .models import users, loyalty_point_logs
from .notifications import format_currency

logger = logging.getLogger("water-delivery.loyalty")


async def _get_customer(customer_id: int) -> dict:
    row = await database.fetch_one(users.select().where(users.c.id == customer_id))
    if not row:
        raise NotFoundError("Customer", customer_id)
    return row_to_dict(row)


async def get_balance(customer_id: int) -> int:
    return (await _get_customer(customer_id))["points_balance"]


async def award_points(customer_id: int, points: int, reason: str, reference_id: Optional[int] = None) -> None:
    """Credit points to a customer and append a ledger entry."""
    await _get_customer(customer_id)
    if points <= 0:
        return

    await database.execute(
        users.update()
        .where(users.c.id == customer_id)
        .values(points_balance=users.c.points_balance + points)
    )
    await database.execute(
        loyalty_point_logs.insert().values(
            customer_id=customer_id,
            points_change=points,
            reason=reason,
            reference_id=reference_id,
            created_at=datetime.utcnow(),
        )
    )
    logger.info(f"[Loyalty] +{points} pts → customer {customer_id} ({reason})")


async def redeem_points(customer_id: int, points: int) -> dict:
    """Redeem points. 100 pts = 50.00 discount."""
    customer = await _get_customer(customer_id)
    if points < MIN_REDEEM_POINTS:
        raise BusinessRuleError(f"At least {MIN_REDEEM_POINTS} points are required to redeem.")
    if customer["points_balance"] < points:
        raise BusinessRuleError("Insufficient points balance.")

    discount = points / POINTS_PER_REDEMPTION_UNIT * DISCOUNT_PER_REDEMPTION_UNIT

    await database.execute(
        users.update()
        .where(users.c.id == customer_id)
        .values(points_balance=users.c.points_balance - points)
    )
    await database.execute(
        loyalty_point_logs.insert().values(
            customer_id=customer_id,
            points_change=-points,
            reason=f"Redeemed {points} points for {format_currency(discount)} discount",
            reference_id=None,
            created_at=datetime.utcnow(),
        )
    )
    logger.info(f"[Loyalty] -{points} pts ← customer {customer_id} (redeemed)")
    return {"discount_amount": discount, "points_balance": await get_balance(customer_id)}


async def history(customer_id: int, limit: int = 20, offset: int = 0) -> List[dict]:
    rows = await database.fetch_all(
        loyalty_point_logs.select()
        .where(loyalty_point_logs.c.customer_id == customer_id)
        .order_by(loyalty_point_logs.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [row_to_dict(r) for r in rows]

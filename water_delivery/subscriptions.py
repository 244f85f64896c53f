# subscriptions.py
"""
Recurring deliveries. A due subscription turns into a regular order, so the
delivery team hears about it through the same NewOrderPlaced cascade as any
customer-placed order.
"""
import logging
from datetime import datetime, date, timedelta
from typing import List, Optional

from . import orders
from .database import database, row_to_dict
from .errors import BusinessRuleError, DomainError, ForbiddenError, NotFoundError, ReactionError
from .events import event_bus
from .models import products, subscriptions, users, zones
from .schemas import SubscriptionCreate

logger = logging.getLogger("water-delivery.subscriptions")

ALLOWED_FREQUENCIES = (7, 14, 30)


async def get_owned(subscription_id: int, customer_id: int) -> dict:
    row = await database.fetch_one(subscriptions.select().where(subscriptions.c.id == subscription_id))
    if not row:
        raise NotFoundError("Subscription", subscription_id)
    sub = row_to_dict(row)
    if sub["customer_id"] != customer_id:
        raise ForbiddenError("Forbidden.")
    return sub


async def list_for_customer(customer_id: int) -> List[dict]:
    rows = await database.fetch_all(
        subscriptions.select()
        .where(subscriptions.c.customer_id == customer_id)
        .order_by(subscriptions.c.id.desc())
    )
    return [row_to_dict(r) for r in rows]


async def create(customer_id: int, body: SubscriptionCreate, today: Optional[date] = None) -> dict:
    if body.frequency_days not in ALLOWED_FREQUENCIES:
        raise BusinessRuleError("Frequency must be 7, 14 or 30 days.")
    if not await database.fetch_one(products.select().where(products.c.id == body.product_id)):
        raise NotFoundError("Product", body.product_id)
    if not await database.fetch_one(zones.select().where(zones.c.id == body.zone_id)):
        raise NotFoundError("Zone", body.zone_id)

    today = today or datetime.utcnow().date()
    values = {
        "customer_id": customer_id,
        "product_id": body.product_id,
        "quantity": body.quantity,
        "zone_id": body.zone_id,
        "delivery_address": body.delivery_address,
        "frequency_days": body.frequency_days,
        "next_delivery_date": body.next_delivery_date or today + timedelta(days=body.frequency_days),
        "is_active": True,
    }
    subscription_id = await database.execute(
        subscriptions.insert().values(**values, created_at=datetime.utcnow())
    )
    return {"id": subscription_id, **values}


async def toggle(subscription_id: int, customer_id: int) -> dict:
    sub = await get_owned(subscription_id, customer_id)
    await database.execute(
        subscriptions.update()
        .where(subscriptions.c.id == subscription_id)
        .values(is_active=not sub["is_active"])
    )
    return await get_owned(subscription_id, customer_id)


async def delete(subscription_id: int, customer_id: int) -> None:
    await get_owned(subscription_id, customer_id)
    await database.execute(subscriptions.delete().where(subscriptions.c.id == subscription_id))


async def _advance(sub: dict, today: date):
    await database.execute(
        subscriptions.update()
        .where(subscriptions.c.id == sub["id"])
        .values(next_delivery_date=today + timedelta(days=sub["frequency_days"]))
    )


async def process_due_subscriptions(today: Optional[date] = None, bus=event_bus) -> int:
    """Create an order for every active subscription due on or before `today`."""
    today = today or datetime.utcnow().date()
    rows = await database.fetch_all(
        subscriptions.select()
        .where(subscriptions.c.is_active == True)  # noqa: E712
        .where(subscriptions.c.next_delivery_date <= today)
        .order_by(subscriptions.c.id)
    )

    processed = 0
    for row in rows:
        sub = row_to_dict(row)
        product = row_to_dict(await database.fetch_one(products.select().where(products.c.id == sub["product_id"])))
        zone = await database.fetch_one(zones.select().where(zones.c.id == sub["zone_id"]))
        if not product or not product["is_active"] or not zone:
            logger.info(f"[Subscriptions] #{sub['id']} skipped: product or zone unavailable")
            continue

        customer = row_to_dict(await database.fetch_one(users.select().where(users.c.id == sub["customer_id"])))
        address = (customer or {}).get("address") or sub["delivery_address"]

        try:
            await orders.create_order(
                sub["customer_id"],
                [(sub["product_id"], sub["quantity"])],
                sub["zone_id"],
                address,
                notes=f"Auto-generated from subscription #{sub['id']}",
                check_stock=False,
                bus=bus,
            )
        except ReactionError:
            # order row is committed; only a reaction failed
            logger.exception(f"[Subscriptions] #{sub['id']} order created but a reaction failed")
        except DomainError as e:
            logger.error(f"[Subscriptions] #{sub['id']} processing failed: {e.message}")
            continue

        await _advance(sub, today)
        processed += 1

    logger.info(f"[Subscriptions] Processed {processed} subscription(s)")
    return processed

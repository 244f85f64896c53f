# inventory.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from . import notifications
from .database import database, row_to_dict
from .errors import NotFoundError
from .models import products, inventory_logs, InventoryChange

logger = logging.getLogger("water-delivery.inventory")


async def get_product(product_id: int) -> dict:
    row = await database.fetch_one(products.select().where(products.c.id == product_id))
    if not row:
        raise NotFoundError("Product", product_id)
    return row_to_dict(row)


def is_low_stock(product: dict) -> bool:
    return product["stock_quantity"] <= product["low_stock_threshold"]


async def _log(product_id: int, change: int, type_: str, reason: str, performed_by: Optional[int]):
    await database.execute(
        inventory_logs.insert().values(
            product_id=product_id,
            change_quantity=change,
            type=type_,
            reason=reason,
            performed_by=performed_by,
            created_at=datetime.utcnow(),
        )
    )


async def deduct_stock(product_id: int, quantity: int, reason: str, performed_by: Optional[int] = None) -> dict:
    """
    Decrement stock and log it. Notify admins if the product falls to or below
    its threshold. Stock is allowed to go negative.
    """
    await get_product(product_id)

    await database.execute(
        products.update()
        .where(products.c.id == product_id)
        .values(stock_quantity=products.c.stock_quantity - quantity)
    )
    await _log(product_id, -quantity, InventoryChange.stock_out.value, reason, performed_by)

    fresh = await get_product(product_id)
    logger.info(f"[Inventory] -{quantity} {fresh['name']} ({reason}) → {fresh['stock_quantity']} left")

    if is_low_stock(fresh):
        await notifications.notify_admins(
            "Low Stock Alert",
            f"{fresh['name']} is now at {fresh['stock_quantity']} units (threshold: {fresh['low_stock_threshold']}).",
            "low_stock",
        )
    return fresh


async def add_stock(product_id: int, quantity: int, reason: str, performed_by: Optional[int] = None) -> dict:
    await get_product(product_id)

    await database.execute(
        products.update()
        .where(products.c.id == product_id)
        .values(stock_quantity=products.c.stock_quantity + quantity)
    )
    await _log(product_id, quantity, InventoryChange.stock_in.value, reason, performed_by)

    fresh = await get_product(product_id)
    logger.info(f"[Inventory] +{quantity} {fresh['name']} ({reason}) → {fresh['stock_quantity']} left")
    return fresh


async def adjust_stock(product_id: int, quantity: int, type_: str, reason: str, performed_by: Optional[int] = None) -> dict:
    """Manual adjustment: stock_in adds, stock_out and adjustment deduct |quantity|."""
    if type_ == InventoryChange.stock_in.value:
        return await add_stock(product_id, quantity, reason, performed_by)
    return await deduct_stock(product_id, abs(quantity), reason, performed_by)


async def overview(low_stock_only: bool = False) -> List[dict]:
    query = products.select().order_by(products.c.id)
    if low_stock_only:
        query = query.where(products.c.stock_quantity <= products.c.low_stock_threshold)
    rows = await database.fetch_all(query)
    result = []
    for row in rows:
        p = row_to_dict(row)
        result.append({
            "id": p["id"],
            "name": p["name"],
            "category": p["category"],
            "stock_quantity": p["stock_quantity"],
            "low_stock_threshold": p["low_stock_threshold"],
            "is_low_stock": is_low_stock(p),
            "unit": p["unit"],
        })
    return result


async def find_low_stock() -> List[dict]:
    rows = await database.fetch_all(
        products.select()
        .where(products.c.is_active == True)  # noqa: E712
        .where(products.c.stock_quantity <= products.c.low_stock_threshold)
        .order_by(products.c.id)
    )
    return [row_to_dict(r) for r in rows]


async def list_logs(product_id: Optional[int] = None, type_: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[dict]:
    query = (
        select(inventory_logs, products.c.name.label("product_name"))
        .select_from(inventory_logs.outerjoin(products, inventory_logs.c.product_id == products.c.id))
    )
    if product_id is not None:
        query = query.where(inventory_logs.c.product_id == product_id)
    if type_:
        query = query.where(inventory_logs.c.type == type_)
    query = query.order_by(inventory_logs.c.id.desc()).limit(limit).offset(offset)
    rows = await database.fetch_all(query)
    return [row_to_dict(r) for r in rows]

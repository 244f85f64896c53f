# orders.py
"""
Order persistence and the two mutations that raise lifecycle events.

Both mutations finish their own writes before publishing, so a failing
reaction never undoes the order row.
"""
import logging
from datetime import datetime, date
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select

from . import inventory, notifications
from .database import database, row_to_dict
from .errors import BusinessRuleError, ForbiddenError, NotFoundError
from .events import event_bus, NewOrderPlaced, OrderStatusUpdated
from .metrics import ORDERS_PLACED
from .models import (
    orders, order_items, products, users, zones, delivery_assignments,
    AssignmentStatus, OrderStatus, PaymentMethod, PaymentStatus,
)
from .schemas import Order, OrderCreate

logger = logging.getLogger("water-delivery.orders")


# ------------------------- HYDRATION -------------------------
async def _load_items(order_id: int) -> List[dict]:
    rows = await database.fetch_all(
        select(
            order_items,
            products.c.name.label("product_name"),
            products.c.category.label("product_category"),
            products.c.price.label("product_price"),
            products.c.unit.label("product_unit"),
        )
        .select_from(order_items.outerjoin(products, order_items.c.product_id == products.c.id))
        .where(order_items.c.order_id == order_id)
        .order_by(order_items.c.id)
    )
    items = []
    for row in rows:
        data = row_to_dict(row)
        product = None
        if data["product_name"] is not None:
            product = {
                "id": data["product_id"],
                "name": data["product_name"],
                "category": data["product_category"],
                "price": data["product_price"],
                "unit": data["product_unit"],
            }
        items.append({
            "id": data["id"],
            "product_id": data["product_id"],
            "quantity": data["quantity"],
            "unit_price": data["unit_price"],
            "subtotal": data["subtotal"],
            "product": product,
        })
    return items


async def _load_assignment(order_id: int) -> Optional[dict]:
    row = await database.fetch_one(
        select(delivery_assignments, users.c.name.label("delivery_staff_name"))
        .select_from(
            delivery_assignments.outerjoin(users, delivery_assignments.c.delivery_staff_id == users.c.id)
        )
        .where(delivery_assignments.c.order_id == order_id)
    )
    return row_to_dict(row)


async def load_order_detail(order_id: int) -> Order:
    """Load an order together with its customer, zone, items, products and assignment."""
    row = await database.fetch_one(orders.select().where(orders.c.id == order_id))
    if not row:
        raise NotFoundError("Order", order_id)
    data = row_to_dict(row)

    customer = await database.fetch_one(users.select().where(users.c.id == data["customer_id"]))
    zone = None
    if data["zone_id"] is not None:
        zone = await database.fetch_one(zones.select().where(zones.c.id == data["zone_id"]))

    data["customer"] = row_to_dict(customer)
    data["zone"] = row_to_dict(zone)
    data["items"] = await _load_items(order_id)
    data["delivery_assignment"] = await _load_assignment(order_id)
    return Order(**data)


# ------------------------- QUERIES -------------------------
async def list_orders(
    customer_id: Optional[int] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 20,
    offset: int = 0,
) -> List[Order]:
    query = select(orders.c.id)
    if customer_id is not None:
        query = query.where(orders.c.customer_id == customer_id)
    if status:
        query = query.where(orders.c.status == status)
    if date_from:
        query = query.where(orders.c.created_at >= datetime.combine(date_from, datetime.min.time()))
    if date_to:
        query = query.where(orders.c.created_at <= datetime.combine(date_to, datetime.max.time()))
    query = query.order_by(orders.c.id.desc()).limit(limit).offset(offset)

    rows = await database.fetch_all(query)
    return [await load_order_detail(row_to_dict(r)["id"]) for r in rows]


async def get_customer_order(order_id: int, customer_id: int) -> Order:
    order = await load_order_detail(order_id)
    if order.customer_id != customer_id:
        raise ForbiddenError("Forbidden.")
    return order


# ------------------------- CREATION -------------------------
async def create_order(
    customer_id: int,
    items: Sequence[Tuple[int, int]],
    zone_id: int,
    delivery_address: str,
    payment_method: str = PaymentMethod.cod.value,
    preferred_time: Optional[str] = None,
    notes: Optional[str] = None,
    check_stock: bool = True,
    bus=event_bus,
    trace_id: Optional[str] = None,
) -> Order:
    """
    Persist an order, its line items and a pending delivery assignment in one
    transaction, then publish NewOrderPlaced.

    `items` is a sequence of (product_id, quantity). total_amount is the sum of
    unit price x quantity; the zone's delivery fee is stored alongside it.
    """
    now = datetime.utcnow()

    async with database.transaction():
        zone = await database.fetch_one(zones.select().where(zones.c.id == zone_id))
        if not zone:
            raise NotFoundError("Zone", zone_id)
        zone = row_to_dict(zone)

        subtotal = 0.0
        lines = []
        for product_id, quantity in items:
            product = await inventory.get_product(product_id)
            if check_stock and product["stock_quantity"] < quantity:
                raise BusinessRuleError(
                    f"Insufficient stock for {product['name']}. Available: {product['stock_quantity']}"
                )
            line_total = product["price"] * quantity
            subtotal += line_total
            lines.append({
                "product_id": product_id,
                "quantity": quantity,
                "unit_price": product["price"],
                "subtotal": line_total,
            })

        order_id = await database.execute(
            orders.insert().values(
                customer_id=customer_id,
                status=OrderStatus.pending.value,
                payment_method=payment_method,
                payment_status=PaymentStatus.unpaid.value,
                zone_id=zone_id,
                delivery_address=delivery_address,
                preferred_time=preferred_time,
                notes=notes,
                subtotal=subtotal,
                delivery_fee=zone["delivery_fee"],
                total_amount=subtotal,
                created_at=now,
                updated_at=now,
            )
        )
        for line in lines:
            await database.execute(order_items.insert().values(order_id=order_id, **line))

        await database.execute(
            delivery_assignments.insert().values(
                order_id=order_id,
                status=AssignmentStatus.pending.value,
                created_at=now,
                updated_at=now,
            )
        )

    ORDERS_PLACED.inc()
    logger.info(f"[TRACE {trace_id}] ✅ Order {order_id} created by customer {customer_id}")

    order = await load_order_detail(order_id)
    await bus.publish(NewOrderPlaced(order=order, trace_id=trace_id))
    return order


async def place_order(customer_id: int, body: OrderCreate, bus=event_bus, trace_id: Optional[str] = None) -> Order:
    return await create_order(
        customer_id,
        [(item.product_id, item.quantity) for item in body.items],
        body.zone_id,
        body.delivery_address,
        payment_method=body.payment_method.value,
        preferred_time=body.preferred_time,
        notes=body.notes,
        bus=bus,
        trace_id=trace_id,
    )


# ------------------------- STATUS -------------------------
async def change_status(
    order_id: int,
    new_status: str,
    payment_status: Optional[str] = None,
    bus=event_bus,
    trace_id: Optional[str] = None,
) -> Order:
    """Write the order's status, then publish OrderStatusUpdated with the prior value."""
    row = await database.fetch_one(orders.select().where(orders.c.id == order_id))
    if not row:
        raise NotFoundError("Order", order_id)
    previous_status = row_to_dict(row)["status"]

    values = {"status": new_status, "updated_at": datetime.utcnow()}
    if payment_status is not None:
        values["payment_status"] = payment_status
    await database.execute(orders.update().where(orders.c.id == order_id).values(**values))
    logger.info(f"[TRACE {trace_id}] ✏️ Order {order_id} {previous_status} → {new_status}")

    order = await load_order_detail(order_id)
    await bus.publish(OrderStatusUpdated(order=order, previous_status=previous_status, trace_id=trace_id))
    return order


async def cancel_order(order_id: int, customer_id: int, bus=event_bus, trace_id: Optional[str] = None) -> Order:
    """Customer cancellation, allowed only while the order is pending."""
    order = await get_customer_order(order_id, customer_id)
    if order.status != OrderStatus.pending:
        raise BusinessRuleError("Only pending orders can be cancelled.")

    await database.execute(
        delivery_assignments.update()
        .where(delivery_assignments.c.order_id == order_id)
        .values(
            status=AssignmentStatus.cancelled.value,
            cancellation_reason="Cancelled by customer",
            updated_at=datetime.utcnow(),
        )
    )
    return await change_status(order_id, OrderStatus.cancelled.value, bus=bus, trace_id=trace_id)


async def override_status(order_id: int, new_status: str, bus=event_bus, trace_id: Optional[str] = None) -> Order:
    """Admin override. Delivered orders are also marked paid."""
    payment_status = PaymentStatus.paid.value if new_status == OrderStatus.delivered.value else None
    order = await change_status(order_id, new_status, payment_status=payment_status, bus=bus, trace_id=trace_id)

    await notifications.notify_user(
        order.customer_id,
        "Order Status Updated",
        f"Your order #{order_id} status has been updated to {new_status}.",
        "order_status",
        order_id,
    )
    return order

# delivery.py
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from . import notifications, orders
from .database import database, row_to_dict
from .errors import BusinessRuleError, ForbiddenError, NotFoundError
from .events import event_bus
from .models import delivery_assignments, AssignmentStatus, OrderStatus, PaymentStatus

logger = logging.getLogger("water-delivery.delivery")

# delivery assignment status -> order status
ORDER_STATUS_MAP = {
    AssignmentStatus.in_transit.value: OrderStatus.out_for_delivery.value,
    AssignmentStatus.delivered.value: OrderStatus.delivered.value,
}

STATUS_LABELS = {
    AssignmentStatus.in_transit.value: "Out for Delivery",
    AssignmentStatus.delivered.value: "Delivered",
}


async def get_assignment(assignment_id: int) -> dict:
    row = await database.fetch_one(delivery_assignments.select().where(delivery_assignments.c.id == assignment_id))
    if not row:
        raise NotFoundError("Delivery assignment", assignment_id)
    return row_to_dict(row)


async def _with_order(assignment: dict) -> dict:
    return {**assignment, "order": await orders.load_order_detail(assignment["order_id"])}


async def queue(staff_id: int) -> dict:
    """Deliveries assigned to this staff member plus unclaimed pending ones."""
    assigned = await database.fetch_all(
        delivery_assignments.select()
        .where(delivery_assignments.c.delivery_staff_id == staff_id)
        .where(delivery_assignments.c.status.in_([AssignmentStatus.assigned.value, AssignmentStatus.in_transit.value]))
        .order_by(delivery_assignments.c.id.desc())
    )
    unassigned = await database.fetch_all(
        delivery_assignments.select()
        .where(delivery_assignments.c.delivery_staff_id.is_(None))
        .where(delivery_assignments.c.status == AssignmentStatus.pending.value)
        .order_by(delivery_assignments.c.id.desc())
    )
    return {
        "assigned": [await _with_order(row_to_dict(r)) for r in assigned],
        "unassigned": [await _with_order(row_to_dict(r)) for r in unassigned],
    }


async def stats(staff_id: int, today: Optional[datetime] = None) -> dict:
    today = today or datetime.utcnow()
    start = datetime.combine(today.date(), datetime.min.time())
    mine = delivery_assignments.c.delivery_staff_id == staff_id
    delivered = delivery_assignments.c.status == AssignmentStatus.delivered.value

    def count(*conditions):
        return select(func.count()).select_from(delivery_assignments).where(*conditions)

    return {
        "today_delivered": await database.fetch_val(count(mine, delivered, delivery_assignments.c.updated_at >= start)) or 0,
        "total_delivered": await database.fetch_val(count(mine, delivered)) or 0,
        "pending": await database.fetch_val(
            count(mine, delivery_assignments.c.status.in_([AssignmentStatus.assigned.value, AssignmentStatus.in_transit.value]))
        ) or 0,
    }


async def accept(assignment_id: int, staff_id: int, bus=event_bus, trace_id: Optional[str] = None) -> dict:
    """Claim a delivery. The order moves to confirmed and the customer is told."""
    assignment = await get_assignment(assignment_id)
    if assignment["delivery_staff_id"] is not None and assignment["delivery_staff_id"] != staff_id:
        raise BusinessRuleError("This delivery is already assigned to another driver.")

    await database.execute(
        delivery_assignments.update()
        .where(delivery_assignments.c.id == assignment_id)
        .values(delivery_staff_id=staff_id, status=AssignmentStatus.assigned.value, updated_at=datetime.utcnow())
    )
    order_id = assignment["order_id"]
    order = await orders.change_status(order_id, OrderStatus.confirmed.value, bus=bus, trace_id=trace_id)

    await notifications.notify_user(
        order.customer_id,
        "Order Confirmed",
        f"Your order #{order_id} has been confirmed and a rider has been assigned.",
        "order_confirmed",
        order_id,
    )
    logger.info(f"[TRACE {trace_id}] 🚚 Staff {staff_id} accepted delivery {assignment_id} (order {order_id})")
    return await _with_order(await get_assignment(assignment_id))


async def update_status(assignment_id: int, staff_id: int, status: str, bus=event_bus, trace_id: Optional[str] = None) -> dict:
    """Move a claimed delivery to in_transit or delivered and mirror it on the order."""
    if status not in ORDER_STATUS_MAP:
        raise BusinessRuleError("Status must be one of: in_transit, delivered.")

    assignment = await get_assignment(assignment_id)
    if assignment["delivery_staff_id"] != staff_id:
        raise ForbiddenError("This delivery is not assigned to you.")

    await database.execute(
        delivery_assignments.update()
        .where(delivery_assignments.c.id == assignment_id)
        .values(status=status, updated_at=datetime.utcnow())
    )

    order_id = assignment["order_id"]
    payment_status = PaymentStatus.paid.value if status == AssignmentStatus.delivered.value else None
    order = await orders.change_status(
        order_id, ORDER_STATUS_MAP[status], payment_status=payment_status, bus=bus, trace_id=trace_id
    )

    label = STATUS_LABELS[status]
    await notifications.notify_user(
        order.customer_id,
        f"Order {label}",
        f"Your order #{order_id} is now {label}.",
        "order_status",
        order_id,
    )
    return await _with_order(await get_assignment(assignment_id))

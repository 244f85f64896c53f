# event_handlers.py
import logging

from . import inventory, loyalty, notifications
from .broadcasting import broadcast_new_order, broadcast_status_updated
from .events import EventBus, NewOrderPlaced, OrderStatusUpdated
from .models import OrderStatus, ProductCategory
from .notifications import format_currency

logger = logging.getLogger("water-delivery.reactions")


EVENT_MESSAGES = {
    "new_order": lambda order: (
        f"Order #{order.id} placed by {order.customer.name if order.customer else 'a customer'}"
        f" - {format_currency(order.total_amount)}"
    ),
    "order_delivered": lambda order: f"Your order #{order.id} has been delivered successfully!",
    "order_reason": lambda order: f"Order #{order.id} delivered",
}


def loyalty_eligible_quantity(order) -> int:
    """Quantities of water-category items; everything else earns nothing."""
    total = 0
    for item in order.items:
        if item.product is not None and item.product.category == ProductCategory.water.value:
            total += item.quantity
    return total


# -------------------------------
# Reactions
# -------------------------------
async def send_order_notification(event: NewOrderPlaced):
    """Tell every admin about a new order."""
    order = event.order
    ids = await notifications.notify_admins(
        "New Order Received",
        EVENT_MESSAGES["new_order"](order),
        "new_order",
        order.id,
    )
    logger.info(f"[TRACE {event.trace_id}] [NOTIFY] order {order.id} → {len(ids)} admin(s)")


async def update_inventory_on_delivery(event: OrderStatusUpdated):
    """
    Delivered orders only:
    1. deduct stock once per line item (no rollback across items)
    2. award one point per water-category unit
    3. tell the customer
    Re-publishing the same event repeats all three.
    """
    order = event.order
    if order.status != OrderStatus.delivered.value:
        return

    reason = EVENT_MESSAGES["order_reason"](order)

    for item in order.items:
        await inventory.deduct_stock(item.product_id, item.quantity, reason)

    points = loyalty_eligible_quantity(order)
    if points > 0:
        await loyalty.award_points(order.customer_id, points, reason, reference_id=order.id)

    await notifications.notify_user(
        order.customer_id,
        "Order Delivered",
        EVENT_MESSAGES["order_delivered"](order),
        "order_delivered",
        order.id,
    )
    logger.info(
        f"[TRACE {event.trace_id}] 🎉 Order {order.id} delivered: "
        f"{len(order.items)} deduction(s), {points} point(s)"
    )


# -------------------------------
# Registration
# -------------------------------
EVENT_HANDLERS = {
    NewOrderPlaced.name: [broadcast_new_order, send_order_notification],
    OrderStatusUpdated.name: [broadcast_status_updated, update_inventory_on_delivery],
}


def register_reactions(bus: EventBus) -> EventBus:
    for event_name, reactions in EVENT_HANDLERS.items():
        for reaction in reactions:
            bus.subscribe(event_name, reaction)
    return bus

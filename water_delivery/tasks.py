# tasks.py
"""
Scheduled jobs, meant to be run from cron:

    python -m water_delivery.tasks check-low-stock
    python -m water_delivery.tasks process-subscriptions
"""
import argparse
import asyncio
import logging

from . import inventory, notifications, subscriptions
from .config import LOG_LEVEL
from .database import database, init_db
from .event_handlers import register_reactions
from .events import event_bus

logger = logging.getLogger("water-delivery.tasks")


async def check_low_stock() -> int:
    """Notify admins about every active product at or below its threshold."""
    low = await inventory.find_low_stock()
    if not low:
        logger.info("No low-stock products found.")
        return 0

    for product in low:
        await notifications.notify_admins(
            "Low Stock Alert",
            f"{product['name']} has only {product['stock_quantity']} {product['unit']}(s) left "
            f"(threshold: {product['low_stock_threshold']}).",
            "low_stock",
            product["id"],
        )
    logger.info(f"Notified admins about {len(low)} low-stock product(s).")
    return len(low)


async def process_subscriptions(bus=event_bus) -> int:
    return await subscriptions.process_due_subscriptions(bus=bus)


TASKS = {
    "check-low-stock": check_low_stock,
    "process-subscriptions": process_subscriptions,
}


async def run(task_name: str) -> int:
    await database.connect()
    try:
        return await TASKS[task_name]()
    finally:
        await database.disconnect()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Water delivery scheduled tasks")
    parser.add_argument("task", choices=sorted(TASKS))
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format="[%(asctime)s] [%(levelname)s] %(message)s")
    init_db()
    register_reactions(event_bus)
    asyncio.run(run(args.task))


if __name__ == "__main__":
    main()

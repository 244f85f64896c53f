# notifications.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select

from .config import CURRENCY_SYMBOL
from .database import database, row_to_dict
from .errors import ForbiddenError, NotFoundError
from .models import notifications, users, Role

logger = logging.getLogger("water-delivery.notifications")


def format_currency(amount) -> str:
    """450 -> '₱450.00', 1234.5 -> '₱1,234.50'."""
    return f"{CURRENCY_SYMBOL}{float(amount):,.2f}"


async def users_with_role(role: str) -> List[int]:
    """Ids of every user currently holding `role`."""
    rows = await database.fetch_all(
        select(users.c.id).where(users.c.role == role).order_by(users.c.id)
    )
    return [row_to_dict(r)["id"] for r in rows]


async def notify_user(user_id: int, title: str, message: str, type_: str, reference_id: Optional[int] = None) -> int:
    """Create a notification for a single user."""
    notification_id = await database.execute(
        notifications.insert().values(
            user_id=user_id,
            title=title,
            message=message,
            type=type_,
            reference_id=reference_id,
            is_read=False,
            created_at=datetime.utcnow(),
        )
    )
    logger.info(f"[NOTIFY] user={user_id} type={type_} ref={reference_id} → {title}")
    return notification_id


async def notify_admins(title: str, message: str, type_: str, reference_id: Optional[int] = None) -> List[int]:
    """Send a notification to all admin users."""
    ids = []
    for admin_id in await users_with_role(Role.admin.value):
        ids.append(await notify_user(admin_id, title, message, type_, reference_id))
    return ids


async def list_for_user(user_id: int, limit: int = 20, offset: int = 0) -> dict:
    rows = await database.fetch_all(
        notifications.select()
        .where(notifications.c.user_id == user_id)
        .order_by(notifications.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    total = await database.fetch_val(
        select(func.count()).select_from(notifications).where(notifications.c.user_id == user_id)
    )
    unread = await database.fetch_val(
        select(func.count()).select_from(notifications).where(
            (notifications.c.user_id == user_id) & (notifications.c.is_read == False)  # noqa: E712
        )
    )
    return {"data": [row_to_dict(r) for r in rows], "unread_count": unread or 0, "total": total or 0}


async def mark_read(notification_id: int, user_id: int) -> None:
    row = await database.fetch_one(notifications.select().where(notifications.c.id == notification_id))
    if not row:
        raise NotFoundError("Notification", notification_id)
    if row_to_dict(row)["user_id"] != user_id:
        raise ForbiddenError("Forbidden.")
    await database.execute(
        notifications.update().where(notifications.c.id == notification_id).values(is_read=True)
    )


async def mark_all_read(user_id: int) -> None:
    await database.execute(
        notifications.update()
        .where((notifications.c.user_id == user_id) & (notifications.c.is_read == False))  # noqa: E712
        .values(is_read=True)
    )

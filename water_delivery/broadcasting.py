# broadcasting.py
import json
import logging
from datetime import datetime

import aioboto3

from .config import USE_AWS, AWS_REGION, BROADCAST_QUEUE_URL
from .metrics import BROADCASTS_SENT
from .ws_manager import manager, DELIVERY_TEAM_CHANNEL, order_channel

logger = logging.getLogger("water-delivery.broadcast")

session = aioboto3.Session()


def build_envelope(channel: str, event: str, data: dict) -> dict:
    return {"event": event, "channel": channel, "data": data}


async def broadcast(channel: str, event: str, data: dict, trace_id: str = None) -> dict:
    """
    Push an event to:
    - WebSocket subscribers of `channel`
    - the broadcast SQS queue (only when USE_AWS is on)
    """
    envelope = build_envelope(channel, event, data)

    # WS
    try:
        sent = await manager.broadcast(channel, envelope)
        BROADCASTS_SENT.labels(event=event).inc(sent)
        logger.info(f"[TRACE {trace_id}] [WS → {channel}] {event} delivered to {sent} client(s)")
    except Exception as e:
        logger.warning(f"[WebSocket ERROR] {e}")

    # ---- LOCAL DEV MODE ----
    if not USE_AWS:
        return envelope

    if not BROADCAST_QUEUE_URL:
        logger.warning("[WARN] USE_AWS is on but BROADCAST_QUEUE_URL is missing")
        return envelope

    # SQS
    try:
        async with session.client("sqs", region_name=AWS_REGION) as sqs:
            await sqs.send_message(
                QueueUrl=BROADCAST_QUEUE_URL,
                MessageBody=json.dumps({**envelope, "trace_id": trace_id}, default=str),
                MessageAttributes={
                    "trace_id": {"DataType": "String", "StringValue": trace_id or "-"}
                }
            )
            logger.info(f"[SQS → {channel}] {event}")
    except Exception as e:
        logger.error(f"[SQS ERROR → {channel}] {e}")

    return envelope


def new_order_payload(order) -> dict:
    return {
        "order_id": order.id,
        "customer_name": order.customer.name if order.customer else None,
        "delivery_address": order.delivery_address,
        "total_amount": order.total_amount,
        "items_count": len(order.items),
    }


def status_updated_payload(order, previous_status: str) -> dict:
    updated_at = order.updated_at or datetime.utcnow()
    return {
        "order_id": order.id,
        "status": order.status.value if hasattr(order.status, "value") else order.status,
        "previous_status": previous_status,
        "updated_at": updated_at.isoformat(),
    }


async def broadcast_new_order(event):
    await broadcast(DELIVERY_TEAM_CHANNEL, event.name, new_order_payload(event.order), trace_id=event.trace_id)


async def broadcast_status_updated(event):
    await broadcast(
        order_channel(event.order.id),
        event.name,
        status_updated_payload(event.order, event.previous_status),
        trace_id=event.trace_id,
    )

# ws_manager.py
import logging
from typing import Dict, List

from fastapi import WebSocket

logger = logging.getLogger("water-delivery.ws")

DELIVERY_TEAM_CHANNEL = "delivery-team"


def order_channel(order_id: int) -> str:
    return f"orders.{order_id}"


class ChannelManager:
    """WebSocket subscribers grouped by channel name."""

    def __init__(self):
        self.channels: Dict[str, List[WebSocket]] = {}

    async def connect(self, channel: str, websocket: WebSocket):
        await websocket.accept()
        self.channels.setdefault(channel, []).append(websocket)
        logger.info(f"[WS] Client joined {channel} ({len(self.channels[channel])} active)")

    def disconnect(self, channel: str, websocket: WebSocket):
        subscribers = self.channels.get(channel, [])
        try:
            subscribers.remove(websocket)
        except ValueError:
            pass
        if not subscribers:
            self.channels.pop(channel, None)
        logger.info(f"[WS] Client left {channel} ({len(subscribers)} active)")

    def subscriber_count(self, channel: str) -> int:
        return len(self.channels.get(channel, []))

    async def broadcast(self, channel: str, message: dict) -> int:
        """Send JSON message to every subscriber of a channel. Returns deliveries."""
        dead = []
        sent = 0
        for ws in list(self.channels.get(channel, [])):
            try:
                await ws.send_json(message)
                sent += 1
            except Exception:
                dead.append(ws)

        # Disconnect failed sockets
        for ws in dead:
            self.disconnect(channel, ws)
        return sent


manager = ChannelManager()

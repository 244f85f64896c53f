# events.py
"""
Order lifecycle events and the in-process bus that delivers them.

Reactions are registered once, at application import, against an event name.
`publish` awaits every reaction for that name in registration order, inside the
request that raised the event. A reaction that raises stops the remaining
reactions and surfaces as ReactionError; whatever the caller already persisted
stays persisted.
"""
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, List, Optional

from .errors import ReactionError
from .metrics import EVENTS_PROCESSED, EVENTS_FAILED
from .schemas import Order

logger = logging.getLogger("water-delivery.events")


@dataclass(frozen=True)
class NewOrderPlaced:
    """A new order, loaded with customer, items, products and zone."""
    name: ClassVar[str] = "order.new"

    order: Order
    trace_id: Optional[str] = None


@dataclass(frozen=True)
class OrderStatusUpdated:
    """An order whose status was just written, plus the status before the write."""
    name: ClassVar[str] = "order.status-updated"

    order: Order
    previous_status: str
    trace_id: Optional[str] = None


class EventBus:
    def __init__(self):
        self._reactions: Dict[str, List[Callable[..., Any]]] = {}

    def subscribe(self, event_name: str, reaction: Callable[..., Any]) -> None:
        self._reactions.setdefault(event_name, []).append(reaction)
        logger.info(f"[EventBus] {getattr(reaction, '__name__', reaction)} subscribed to {event_name}")

    def reactions_for(self, event_name: str) -> List[Callable[..., Any]]:
        return list(self._reactions.get(event_name, []))

    async def publish(self, event) -> None:
        event_name = event.name
        reactions = self._reactions.get(event_name, [])
        logger.info(f"[TRACE {event.trace_id}] Publishing {event_name} to {len(reactions)} reaction(s)")

        for reaction in reactions:
            reaction_name = getattr(reaction, "__name__", repr(reaction))
            try:
                result = reaction(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                EVENTS_FAILED.labels(event_type=event_name).inc()
                logger.exception(f"[TRACE {event.trace_id}] [EVENT ERROR] {reaction_name} failed on {event_name}")
                raise ReactionError(event_name, reaction_name, e) from e
            EVENTS_PROCESSED.labels(event_type=event_name).inc()


# Process-wide bus; reactions are attached by event_handlers.register_reactions()
event_bus = EventBus()

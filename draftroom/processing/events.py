"""In-process draft event fan-out.

Engines publish after a change is committed. Delivery is best effort: a slow
or broken subscriber loses events but never affects the change itself.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from ..models import utcnow

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class EventType(Enum):
    PICK_MADE = "PickMade"
    TRADE_PROPOSED = "TradeProposed"
    TRADE_EXECUTED = "TradeExecuted"
    TRADE_REJECTED = "TradeRejected"


@dataclass
class DraftEvent:
    event_type: EventType
    draft_id: UUID
    data: dict
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "type": self.event_type.value,
            "draft_id": str(self.draft_id),
            "data": self.data,
            "created_at": self.created_at.isoformat(),
        }


class EventBroadcaster:
    """Per-draft subscriber queues."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: dict[UUID, list[asyncio.Queue]] = defaultdict(list)

    def subscribe(self, draft_id: UUID) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[draft_id].append(queue)
        return queue

    def unsubscribe(self, draft_id: UUID, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(draft_id)
        if not queues:
            return
        if queue in queues:
            queues.remove(queue)
        if not queues:
            del self._subscribers[draft_id]

    def subscriber_count(self, draft_id: UUID) -> int:
        return len(self._subscribers.get(draft_id, []))

    def publish(self, event: DraftEvent) -> int:
        """Queue an event for every subscriber of its draft.

        Returns the number of subscribers that received it.
        """
        delivered = 0
        for queue in list(self._subscribers.get(event.draft_id, [])):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Dropped %s event for draft %s: subscriber queue full",
                    event.event_type.value, event.draft_id,
                )
        return delivered


def notify(broadcaster: EventBroadcaster | None, event: DraftEvent) -> None:
    """Publish an event, logging instead of raising on failure."""
    if broadcaster is None:
        return
    try:
        delivered = broadcaster.publish(event)
    except Exception as e:
        logger.warning("Failed to publish %s event: %s", event.event_type.value, e)
        return
    logger.debug("Published %s to %d subscribers", event.event_type.value, delivered)

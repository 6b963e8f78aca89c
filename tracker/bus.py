"""Publish/subscribe channel for monitor notifications (asyncio.Queue, one per subscriber)."""
import asyncio
import logging

from models.notifications import Notification

logger = logging.getLogger(__name__)


class NotificationBus:
    def __init__(self) -> None:
        self._queues: list[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        """Register a subscriber. Notifications arrive in publish order."""
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def publish(self, notice: Notification) -> None:
        logger.debug("Publishing %s to %d subscriber(s)", notice.kind, len(self._queues))
        for queue in list(self._queues):
            queue.put_nowait(notice.model_copy(deep=True))


def drain(queue: asyncio.Queue) -> list[Notification]:
    """Return every notification currently waiting in ``queue``."""
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items

"""
StoreEvents: In-memory pub/sub for bug collection changes.

The presentation layer subscribes once per view and re-renders when an event
arrives instead of polling the store. Each subscriber gets its own queue.
"""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Event types published by BugStore
BUGS_LOADED = "bugs_loaded"
BUG_CREATED = "bug_created"
BUG_UPDATED = "bug_updated"
BUG_DELETED = "bug_deleted"
STORE_ERROR = "error"


class StoreEvents:
    """
    Fan-out of store change events to subscriber queues.

    Usage:
        queue = await events.subscribe()
        try:
            while True:
                event = await queue.get()
                render(event)
        finally:
            await events.unsubscribe(queue)
    """

    def __init__(self, maxsize: int = 0):
        self._subscribers: set[asyncio.Queue] = set()
        self._maxsize = maxsize
        self._lock = asyncio.Lock()

    async def subscribe(self) -> asyncio.Queue:
        """Subscribe to store events. Returns the queue events are delivered to."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        async with self._lock:
            self._subscribers.add(queue)
            subscriber_count = len(self._subscribers)

        logger.debug(f"[Events] New subscriber, total: {subscriber_count}")
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        async with self._lock:
            self._subscribers.discard(queue)
            subscriber_count = len(self._subscribers)

        logger.debug(f"[Events] Subscriber left, remaining: {subscriber_count}")

    async def publish(self, event: dict[str, Any]) -> int:
        """
        Deliver an event to every subscriber.
        Returns the number of subscribers that received it.
        """
        async with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for queue in subscribers:
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"[Events] Subscriber queue full, dropping '{event.get('type')}'")

        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

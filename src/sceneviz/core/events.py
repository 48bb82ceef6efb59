"""In-process pub/sub push channel with Server-Sent Events framing."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator

logger = logging.getLogger(__name__)

QUESTION_CREATED = "question_created"
ANSWER_CREATED = "answer_created"
CONNECTED = "connected"

KEEPALIVE = ":ping\n\n"


def format_sse(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


class EventBus:
    """Fan-out of named events to every connected subscriber.

    Each subscriber gets a bounded queue; a subscriber that stops draining
    it is disconnected instead of blocking publishers.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        logger.debug("Subscriber connected (%d total)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def is_subscribed(self, queue: asyncio.Queue) -> bool:
        return queue in self._subscribers

    def publish(self, event: str, data: Any) -> int:
        """Queue ``event`` for every subscriber; returns how many received it."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait((event, data))
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropping slow subscriber (queue full)")
                self._subscribers.discard(queue)
        return delivered

    async def stream(self, keepalive_seconds: float = 15.0) -> AsyncIterator[str]:
        """Yield SSE-framed messages for one subscriber until it is dropped."""
        queue = self.subscribe()
        try:
            yield format_sse(CONNECTED, {
                "message": "Connected to event stream",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            })
            while self.is_subscribed(queue) or not queue.empty():
                try:
                    event, data = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
                except asyncio.TimeoutError:
                    yield KEEPALIVE
                    continue
                yield format_sse(event, data)
        finally:
            self.unsubscribe(queue)

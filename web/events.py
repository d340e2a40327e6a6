"""In-process broadcast of live events to connected WebSocket observers.

Delivery is at-most-once: an event published while nobody is connected,
or to an observer whose queue is full, is dropped.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

log = logging.getLogger(__name__)

_QUEUE_SIZE = 100


class EventHub:
    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queues: set[asyncio.Queue] = set()
        self._lock = threading.Lock()

    @property
    def observer_count(self) -> int:
        return len(self._queues)

    def subscribe(self) -> asyncio.Queue:
        """Register an observer; must be called from the event loop."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=_QUEUE_SIZE)
        with self._lock:
            self._loop = asyncio.get_running_loop()
            self._queues.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        with self._lock:
            self._queues.discard(queue)

    def publish(self, event: str, data: Any) -> None:
        """Broadcast ``{"event", "data"}``.  Safe to call from any thread."""
        with self._lock:
            loop = self._loop
            queues = list(self._queues)
        if loop is None or not queues or loop.is_closed():
            return
        message = {"event": event, "data": data}
        for queue in queues:
            loop.call_soon_threadsafe(self._offer, queue, message)

    @staticmethod
    def _offer(queue: asyncio.Queue, message: dict) -> None:
        try:
            queue.put_nowait(message)
        except asyncio.QueueFull:
            log.warning("Observer queue full – dropping %s event", message["event"])

from __future__ import annotations

import asyncio
import itertools
import time
from collections import deque
from typing import Set, Deque, Dict, Any, Callable, Awaitable, Optional


class EventBus:
    """In-process pub/sub for trash and lifecycle events."""

    def __init__(self, max_history: int = 200, queue_size: int = 100):
        self._subscribers: Set[asyncio.Queue] = set()
        self._history: Deque[dict] = deque(maxlen=max_history)
        self._lock = asyncio.Lock()
        self._queue_size = queue_size
        self._ids = itertools.count(1)

    async def subscribe(self) -> asyncio.Queue:
        """Subscribe to events, returns a queue for receiving."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        async with self._lock:
            self._subscribers.add(queue)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        async with self._lock:
            self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event_type: str, data: Dict[str, Any]) -> dict:
        """Publish an event to all subscribers and record it in history."""
        event = {
            "id": next(self._ids),
            "type": event_type,
            "data": data,
            "timestamp": time.time(),
        }
        self._history.append(event)

        async with self._lock:
            for queue in self._subscribers:
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    pass  # Slow subscriber; it can catch up from history
        return event

    def get_recent(self, count: int = 20, event_type: Optional[str] = None) -> list:
        """Most recent events, oldest first, optionally of one type."""
        events = list(self._history)
        if event_type:
            events = [e for e in events if e["type"] == event_type]
        return events[-count:] if count > 0 else []


def build_emitter(event_bus: EventBus) -> Callable[..., Awaitable[None]]:
    async def emit_event(event_type: str, message: str, **kwargs) -> None:
        data = {"message": message, **kwargs}
        await event_bus.publish(event_type, data)

    return emit_event


__all__ = ["EventBus", "build_emitter"]

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Query
from sse_starlette.sse import EventSourceResponse


def create_router(event_bus, keepalive: float = 30.0) -> APIRouter:
    router = APIRouter()

    @router.get("/api/events")
    async def api_events():
        """SSE stream of trash and lifecycle events."""

        async def generate():
            queue = await event_bus.subscribe()
            try:
                yield {
                    "event": "system",
                    "data": json.dumps({"message": "Connected to event stream"}),
                }

                while True:
                    try:
                        event = await asyncio.wait_for(queue.get(), timeout=keepalive)
                        yield {
                            "id": str(event["id"]),
                            "event": event["type"],
                            "data": json.dumps(event["data"], default=str),
                        }
                    except asyncio.TimeoutError:
                        yield {"event": "ping", "data": "{}"}

            except asyncio.CancelledError:
                pass
            finally:
                await event_bus.unsubscribe(queue)

        return EventSourceResponse(generate())

    @router.get("/api/events/recent")
    async def api_recent_events(
        count: int = Query(20, ge=1, le=200),
        type: str | None = None,
    ):
        """Recent events from history (polling fallback)."""
        return {"events": event_bus.get_recent(count, event_type=type)}

    return router


__all__ = ["create_router"]

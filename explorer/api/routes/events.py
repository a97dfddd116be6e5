"""
SSE event streaming endpoints for the explorer API.

Streams Status changes published by the StatusPoller so a client can
refresh its status panel and discoveries list without polling the viewer.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from explorer.runtime.signals import Cell
from explorer.runtime.types import Status, status_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/status", tags=["events"])


class EventType:
    """Standard event types for SSE streaming."""

    CONNECTED = "connected"
    HEARTBEAT = "heartbeat"
    STATUS = "status"


def format_sse_event(
    event_type: str,
    data: Dict[str, Any],
    event_id: Optional[str] = None,
    retry: Optional[int] = None,
) -> str:
    """Render one server-sent event frame.

    The payload is JSON encoded on a single data line and stamped with
    ``type`` and ``timestamp`` unless the caller already set them. The
    caller's dict is left untouched. ``retry`` is the client reconnect
    delay in milliseconds.
    """
    payload = {"type": event_type, "timestamp": datetime.now(timezone.utc).isoformat()}
    payload.update(data)

    fields = []
    if event_id:
        fields.append(f"id: {event_id}")
    if event_type:
        fields.append(f"event: {event_type}")
    if retry:
        fields.append(f"retry: {retry}")
    fields.append(f"data: {json.dumps(payload)}")
    # A blank line ends the frame
    return "\n".join(fields) + "\n\n"


async def generate_status_events(
    status: Cell[Optional[Status]],
    request: Optional[Request] = None,
    heartbeat_interval: float = 15.0,
    max_events: Optional[int] = None,
) -> AsyncGenerator[str, None]:
    """Yield SSE events for status changes.

    Yields a connection event, the current status (if any), then one event
    per published change, with heartbeats while nothing changes.

    Args:
        status: Cell the StatusPoller publishes into.
        request: Incoming request, used to stop when the client disconnects.
        heartbeat_interval: Seconds between heartbeats.
        max_events: Stop after this many status events (None streams forever).
    """
    queue: "asyncio.Queue[Optional[Status]]" = asyncio.Queue()
    unsubscribe = status.subscribe(queue.put_nowait)
    event_counter = 0
    sent = 0

    try:
        event_counter += 1
        yield format_sse_event(
            EventType.CONNECTED,
            {"message": "Connected to status stream"},
            event_id=str(event_counter),
        )

        if status.value is not None:
            queue.put_nowait(status.value)

        while max_events is None or sent < max_events:
            if request is not None and await request.is_disconnected():
                break
            try:
                current = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
            except asyncio.TimeoutError:
                event_counter += 1
                yield format_sse_event(EventType.HEARTBEAT, {}, event_id=str(event_counter))
                continue
            if current is None:
                continue
            event_counter += 1
            sent += 1
            yield format_sse_event(
                EventType.STATUS,
                status_to_dict(current),
                event_id=str(event_counter),
            )
    finally:
        unsubscribe()


@router.get("/events")
async def stream_status_events(
    request: Request,
    max_events: Optional[int] = Query(None, ge=1, description="Stop after this many status events"),
):
    """Stream status changes as Server-Sent Events."""
    poller = request.app.state.poller
    return StreamingResponse(
        generate_status_events(poller.status, request, max_events=max_events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )

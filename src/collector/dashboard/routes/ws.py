"""WebSocket progress feed for dashboard clients.

Every message is ``{"type": <event>, "data": <payload>}``:

- ``snapshot``: sent once on connect; run status, series summary and log
- ``stats``: after every fetched page
- ``series``: every few pages and when a run stops (count + last candles)
- ``log``: one operator log entry
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from collector.dashboard.payloads import snapshot_to_dict

log = structlog.get_logger(__name__)

router = APIRouter()


class EventType(str, Enum):
    SNAPSHOT = "snapshot"
    STATS = "stats"
    SERIES = "series"
    LOG = "log"


def make_event(event_type: EventType, data: Any) -> dict[str, Any]:
    return {"type": event_type.value, "data": data}


class DashboardHub:
    """Fans collection progress events out to every connected client."""

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket, snapshot: dict[str, Any] | None = None) -> None:
        """Accept a client and bring it up to date before it joins the feed."""
        await ws.accept()
        if snapshot is not None:
            await ws.send_json(make_event(EventType.SNAPSHOT, snapshot))
        self.connections.append(ws)
        log.info("dashboard_client_connected", clients=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        if ws in self.connections:
            self.connections.remove(ws)
        log.info("dashboard_client_disconnected", clients=len(self.connections))

    async def publish(self, event_type: EventType, data: Any) -> None:
        """Send one event to all clients. Clients whose send fails are dropped."""
        if not self.connections:
            return
        event = make_event(event_type, data)
        dropped = 0
        for ws in self.connections.copy():
            try:
                await ws.send_json(event)
            except Exception:
                self.connections.remove(ws)
                dropped += 1
        if dropped:
            log.warning(
                "dashboard_clients_dropped",
                event_type=event_type.value,
                dropped=dropped,
                clients=len(self.connections),
            )


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    state = websocket.app.state
    hub: DashboardHub = state.hub
    snapshot = snapshot_to_dict(
        state.engine, state.rate_budget, state.settings.dashboard.series_tail
    )
    await hub.connect(websocket, snapshot)
    try:
        while True:
            # Clients only listen; inbound text is drained to detect disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        hub.disconnect(websocket)

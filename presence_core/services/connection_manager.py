"""Manages dashboard WebSocket connections that receive live occupancy."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from presence_core.core.occupancy_counter import LiveOccupancyCounter
from presence_core.domain.errors import PresenceError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected dashboards and pushes occupancy snapshots to them."""

    def __init__(self, counter: LiveOccupancyCounter) -> None:
        self._counter = counter
        self._connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def broadcast_json(self, data: dict[str, Any]) -> None:
        """Send a JSON payload to every connected dashboard."""
        for ws in list(self._connections):
            try:
                await ws.send_json(data)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.debug("Dropping dashboard connection: %s", exc)
                self.disconnect(ws)

    async def push_occupancy(self) -> None:
        """Refresh every location and broadcast the snapshot."""
        if not self._connections:
            return
        try:
            snapshot = await self._counter.snapshot()
        except PresenceError as exc:
            logger.error("Occupancy push skipped: %s", exc)
            return
        await self.broadcast_json({"type": "occupancy", **snapshot.to_dict()})

"""WebSocket endpoint: streams live occupancy to dashboards."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from presence_core.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_occupancy_stream_router(manager: ConnectionManager) -> APIRouter:

    router = APIRouter()

    @router.websocket("/ws/occupancy")
    async def stream_occupancy(websocket: WebSocket) -> None:
        """Dashboards connect here to receive counts after every accepted scan."""
        await manager.connect(websocket)
        logger.info("Dashboard connected — total: %d", manager.active_count)
        await manager.push_occupancy()

        try:
            while True:
                # Keep the connection alive; updates are pushed server-side
                await websocket.receive_text()

        except WebSocketDisconnect:
            manager.disconnect(websocket)
            logger.info("Dashboard disconnected — total: %d", manager.active_count)

    return router

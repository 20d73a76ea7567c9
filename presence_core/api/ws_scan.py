"""WebSocket endpoint for scanner sessions.

Path: /ws/scan?user_id=...&location=...&mode=any|entry|exit

One connection is one open scanner surface, with its own ScanSession and
therefore its own guard.  Each message is one decode callback:

    {"decoded": "gym_check_in"}

Decodes are processed as independent tasks, the way a camera library fires
callbacks while an earlier transition is still in flight; the session's
guard decides which of them reach the store.  Disconnecting closes the
session, so decodes still queued behind it become no-ops.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from presence_core.api.errors import to_ws_reply
from presence_core.core.scan_session import ScanSession
from presence_core.domain.enums import Location, OccupancyAction
from presence_core.domain.errors import PresenceError
from presence_core.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, Location, frozenset[OccupancyAction]], ScanSession]

_MODES: dict[str, frozenset[OccupancyAction]] = {
    "any": frozenset(OccupancyAction),
    "entry": frozenset({OccupancyAction.CHECK_IN}),
    "exit": frozenset({OccupancyAction.CHECK_OUT}),
}


def create_scan_router(
    session_factory: SessionFactory,
    manager: ConnectionManager | None = None,
) -> APIRouter:
    """Factory that wires the scan endpoint to a ScanSession builder.

    Args:
        session_factory: Builds a ScanSession for (user_id, location, allowed actions).
        manager: Optional ConnectionManager notified after accepted scans.
    """

    router = APIRouter()

    @router.websocket("/ws/scan")
    async def scan(
        websocket: WebSocket,
        user_id: str,
        location: Location = Location.OOKAYAMA,
        mode: str = "any",
    ) -> None:
        await websocket.accept()
        allowed = _MODES.get(mode)
        if allowed is None:
            await websocket.send_json({"status": "error", "code": "bad_mode", "detail": f"Unknown mode {mode!r}"})
            await websocket.close(code=1008)
            return

        session = session_factory(user_id, location, allowed)
        pending: set[asyncio.Task] = set()
        logger.info("Scanner opened: user=%s location=%s mode=%s", user_id, location.value, mode)

        async def reply(payload: dict[str, Any]) -> None:
            try:
                await websocket.send_json(payload)
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.debug("Scanner reply dropped: %s", exc)

        async def process(raw: str) -> None:
            try:
                outcome = await session.handle_decode(raw)
            except PresenceError as exc:
                await reply(to_ws_reply(exc))
                return
            if outcome is None:
                await reply({"status": "ignored"})
                return
            await reply({"status": "accepted", **outcome.model_dump(mode="json")})
            if manager is not None:
                asyncio.create_task(manager.push_occupancy())

        try:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    await reply({"status": "error", "code": "bad_message", "detail": "Message is not JSON"})
                    continue
                raw = message.get("decoded") if isinstance(message, dict) else None
                if not isinstance(raw, str):
                    await reply({"status": "error", "code": "bad_message", "detail": "Expected {\"decoded\": <text>}"})
                    continue
                task = asyncio.create_task(process(raw))
                pending.add(task)
                task.add_done_callback(pending.discard)

        except WebSocketDisconnect:
            logger.info("Scanner closed: user=%s", user_id)
        finally:
            session.close()

    return router

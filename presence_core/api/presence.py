"""REST endpoints for a user's presence, stale session correction and usage.

Paths:
    GET  /api/presence/{user_id}
    POST /api/presence/{user_id}/correction
    GET  /api/users/{user_id}/usage

Reading presence counts as "mounting" the view: the stale session monitor
re-evaluates the user each time, which is also how an already-overdue
session gets its prompt.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from presence_core.api.errors import to_http
from presence_core.core.presence import PresenceTracker
from presence_core.core.stale_session import StaleSessionMonitor
from presence_core.core.usage import UsageSummary, usage_for
from presence_core.domain.enums import UsagePeriod
from presence_core.domain.errors import PresenceError
from presence_core.foundation.clock import utc_now
from presence_core.models.views import CorrectionRequest, PresenceView
from presence_core.store.event_store import EventStore

logger = logging.getLogger(__name__)


async def load_presence_view(
    tracker: PresenceTracker,
    monitor: StaleSessionMonitor,
    user_id: str,
) -> PresenceView:
    machine = await tracker.get(user_id)
    monitor.track(machine.state)
    return PresenceView.build(
        machine.state,
        monitor.prompt_for(user_id),
        last_duration_minutes=machine.last_duration_minutes,
    )


def create_presence_router(
    store: EventStore,
    tracker: PresenceTracker,
    monitor: StaleSessionMonitor,
    tz_name: str = "Asia/Tokyo",
) -> APIRouter:
    """Factory that wires the presence endpoints to the shared components."""

    router = APIRouter(prefix="/api", tags=["presence"])

    @router.get("/presence/{user_id}", response_model=PresenceView)
    async def get_presence(user_id: str) -> PresenceView:
        try:
            return await load_presence_view(tracker, monitor, user_id)
        except PresenceError as exc:
            raise to_http(exc) from exc

    @router.post("/presence/{user_id}/correction", response_model=PresenceView)
    async def submit_correction(user_id: str, body: CorrectionRequest) -> PresenceView:
        """Record the duration of a stay whose checkout scan was missed."""
        try:
            await load_presence_view(tracker, monitor, user_id)
            await monitor.submit_correction(user_id, body.duration_minutes)
            return await load_presence_view(tracker, monitor, user_id)
        except PresenceError as exc:
            raise to_http(exc) from exc

    @router.get("/users/{user_id}/usage", response_model=UsageSummary)
    async def get_usage(user_id: str, period: UsagePeriod = UsagePeriod.WEEK) -> UsageSummary:
        try:
            return await usage_for(store, user_id, period, utc_now(), tz_name)
        except PresenceError as exc:
            raise to_http(exc) from exc

    return router

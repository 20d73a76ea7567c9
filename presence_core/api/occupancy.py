"""REST endpoints for live occupancy, today's timeline and the dashboard.

Paths:
    GET /api/occupancy
    GET /api/occupancy/{location}/timeline
    GET /api/dashboard/{user_id}?location=...
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from presence_core.api.errors import to_http
from presence_core.api.presence import load_presence_view
from presence_core.core.occupancy_counter import LiveOccupancyCounter
from presence_core.core.presence import PresenceTracker
from presence_core.core.stale_session import StaleSessionMonitor
from presence_core.core.timeline import TimelineReconstructor
from presence_core.domain.enums import Location
from presence_core.domain.errors import PresenceError
from presence_core.models.views import DashboardView, TimelineView

logger = logging.getLogger(__name__)


def create_occupancy_router(
    counter: LiveOccupancyCounter,
    reconstructor: TimelineReconstructor,
    tracker: PresenceTracker,
    monitor: StaleSessionMonitor,
) -> APIRouter:
    """Factory that wires the occupancy endpoints to counter + reconstructor."""

    router = APIRouter(prefix="/api", tags=["occupancy"])

    async def build_timeline(location: Location) -> TimelineView:
        buckets = await reconstructor.buckets(location)
        current = counter.current(location)
        return TimelineView(
            location=location,
            ready=buckets is not None,
            current_occupancy=current,
            crowd_level=counter.crowd_level(current) if current is not None else None,
            bucket_minutes=reconstructor.window.bucket_minutes,
            occupancy_buckets=buckets or [],
        )

    @router.get("/occupancy")
    async def get_occupancy() -> dict[str, Any]:
        """Live count and crowd label for every location."""
        try:
            snapshot = await counter.snapshot()
        except PresenceError as exc:
            raise to_http(exc) from exc
        return snapshot.to_dict()

    @router.get("/occupancy/{location}/timeline", response_model=TimelineView)
    async def get_timeline(location: Location) -> TimelineView:
        try:
            return await build_timeline(location)
        except PresenceError as exc:
            raise to_http(exc) from exc

    @router.get("/dashboard/{user_id}", response_model=DashboardView)
    async def get_dashboard(user_id: str, location: Location = Location.OOKAYAMA) -> DashboardView:
        try:
            presence = await load_presence_view(tracker, monitor, user_id)
            timeline = await build_timeline(location)
        except PresenceError as exc:
            raise to_http(exc) from exc
        return DashboardView(presence=presence, timeline=timeline)

    return router

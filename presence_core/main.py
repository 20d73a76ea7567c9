"""presence-core — Live Occupancy, Timeline Reconstruction & Stale Session Correction.

This is the application entry point.  It wires the event store, presence
tracker, occupancy counter, timeline reconstructor, stale session monitor,
scan adapters and the HTTP / WebSocket endpoints together.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

from fastapi import FastAPI

from presence_core.adapters.json_payload import JsonPayloadAdapter
from presence_core.adapters.plain_code import PlainCodeAdapter
from presence_core.adapters.registry import AdapterRegistry
from presence_core.api.occupancy import create_occupancy_router
from presence_core.api.presence import create_presence_router
from presence_core.api.ws_occupancy import create_occupancy_stream_router
from presence_core.api.ws_scan import create_scan_router
from presence_core.config import Settings, settings
from presence_core.core.occupancy_counter import CrowdThresholds, LiveOccupancyCounter
from presence_core.core.presence import PresenceTracker
from presence_core.core.scan_session import ScanSession
from presence_core.core.stale_session import StaleSessionMonitor
from presence_core.core.timeline import ChartWindow, TimelineReconstructor
from presence_core.domain.enums import Location, OccupancyAction
from presence_core.domain.errors import PresenceError
from presence_core.services.connection_manager import ConnectionManager
from presence_core.store.event_store import EventStore
from presence_core.store.memory_store import InMemoryEventStore

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(cfg: Settings = settings, store: EventStore | None = None) -> FastAPI:
    """Build the application around *store* (in-memory by default)."""

    # ── State ────────────────────────────────────────────────────────────

    store = store if store is not None else InMemoryEventStore()
    tracker = PresenceTracker(store)
    counter = LiveOccupancyCounter(
        store,
        CrowdThresholds(
            quiet_max=cfg.crowd_quiet_max,
            moderate_max=cfg.crowd_moderate_max,
            busy_max=cfg.crowd_busy_max,
        ),
    )
    reconstructor = TimelineReconstructor(
        store,
        counter,
        ChartWindow(
            bucket_minutes=cfg.bucket_minutes,
            start_hour=cfg.chart_start_hour,
            end_hour=cfg.chart_end_hour,
            tz_name=cfg.timezone,
        ),
    )
    monitor = StaleSessionMonitor(
        store,
        tracker,
        counter=counter,
        threshold=timedelta(minutes=cfg.stale_threshold_minutes),
        min_minutes=cfg.correction_min_minutes,
        max_minutes=cfg.correction_max_minutes,
        default_minutes=cfg.correction_default_minutes,
    )
    manager = ConnectionManager(counter)

    # ── Scan Adapters ────────────────────────────────────────────────────

    registry = AdapterRegistry()
    registry.register(PlainCodeAdapter())
    registry.register(JsonPayloadAdapter())

    def open_scan_session(
        user_id: str,
        location: Location,
        allowed: frozenset[OccupancyAction],
    ) -> ScanSession:
        return ScanSession(
            user_id=user_id,
            location=location,
            store=store,
            tracker=tracker,
            counter=counter,
            adapters=registry,
            monitor=monitor,
            allowed_actions=allowed,
            timeout=cfg.transition_timeout_seconds,
            repeat_window=cfg.scan_repeat_window_seconds,
        )

    # ── Lifecycle ────────────────────────────────────────────────────────

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            snapshot = await counter.snapshot()
            logger.info("Occupancy loaded: total=%d", snapshot.total)
        except PresenceError as exc:
            # Timelines stay "not ready" until the first successful refresh
            logger.warning("Initial occupancy load failed: %s", exc)
        yield
        monitor.close()

    # ── App ──────────────────────────────────────────────────────────────

    app = FastAPI(
        title=cfg.app_name,
        description="Live Occupancy, Timeline Reconstruction & Stale Session Correction",
        version="0.3.0",
        lifespan=lifespan,
    )

    # ── Routes ───────────────────────────────────────────────────────────

    app.include_router(create_presence_router(store, tracker, monitor, tz_name=cfg.timezone))
    app.include_router(create_occupancy_router(counter, reconstructor, tracker, monitor))
    app.include_router(create_scan_router(open_scan_session, manager))
    app.include_router(create_occupancy_stream_router(manager))

    # ── Health ───────────────────────────────────────────────────────────

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "cached_occupancy": {
                loc.value: counter.current(loc) for loc in Location
            },
            "fallback_counts": counter.fallback_count,
            "pending_stale_checks": len(monitor.pending_sessions()),
            "watched_users": monitor.watched_count,
            "dashboards": manager.active_count,
            "adapters": registry.stats,
        }

    return app


app = create_app()

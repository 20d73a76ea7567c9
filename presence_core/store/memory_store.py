"""In-memory EventStore with async-safe access.

Design notes:
    - An asyncio.Lock guards all mutations so concurrent scan handlers
      never interleave a legality check with an append.
    - The store keeps the full log plus an index of each user's latest
      event; legality is decided against that index only.
    - Check-outs are recorded at the location of the open session.
    - The aggregate endpoint can be switched off to exercise the
      client-side fallback path.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable, Optional

from presence_core.domain.enums import Location, OccupancyAction, PresenceStatus
from presence_core.domain.errors import StoreUnavailableError, TransitionRejected
from presence_core.domain.event import OccupancyEvent, TransitionResult
from presence_core.foundation.clock import ensure_utc, utc_now
from presence_core.foundation.identifiers import new_id

logger = logging.getLogger(__name__)


class InMemoryEventStore:
    """Reference implementation of the EventStore protocol.

    Args:
        aggregate_available: When False, aggregate_current_occupancy raises
            StoreUnavailableError as an unreachable endpoint would.
    """

    def __init__(self, aggregate_available: bool = True) -> None:
        self.aggregate_available = aggregate_available
        self._lock = asyncio.Lock()
        self._events: list[OccupancyEvent] = []
        self._latest: dict[str, OccupancyEvent] = {}

    # ── Public API ───────────────────────────────────────────────────────

    async def transition(
        self,
        user_id: str,
        action: OccupancyAction,
        location: Optional[Location] = None,
    ) -> TransitionResult:
        async with self._lock:
            now = utc_now()
            open_session = self._open_session(user_id)

            if action == OccupancyAction.CHECK_IN:
                if open_session is not None:
                    raise TransitionRejected(
                        "already_checked_in",
                        f"Already checked in at {open_session.location.value}",
                    )
                if location is None:
                    raise TransitionRejected("location_required", "Check-in requires a location")
                event = self._append(user_id, location, action, now)
                logger.info("Check-in: user=%s location=%s", user_id, location.value)
                return TransitionResult(
                    user_id=user_id,
                    new_state=PresenceStatus.CHECKED_IN,
                    location=event.location,
                    occurred_at=event.occurred_at,
                )

            if open_session is None:
                raise TransitionRejected("not_checked_in", "No open session to check out of")

            seconds = max(0, int((now - open_session.occurred_at).total_seconds()))
            minutes = seconds // 60
            event = self._append(
                user_id, open_session.location, action, now, duration_minutes=minutes,
            )
            logger.info(
                "Check-out: user=%s location=%s duration=%ds",
                user_id, event.location.value, seconds,
            )
            return TransitionResult(
                user_id=user_id,
                new_state=PresenceStatus.AWAY,
                location=event.location,
                occurred_at=event.occurred_at,
                duration_seconds=seconds,
                duration_minutes=minutes,
            )

    async def correction_commit(self, user_id: str, duration_minutes: int) -> OccupancyEvent:
        async with self._lock:
            open_session = self._open_session(user_id)
            if open_session is None:
                raise TransitionRejected("no_open_session", "No open session to correct")
            event = self._append(
                user_id,
                open_session.location,
                OccupancyAction.CHECK_OUT,
                utc_now(),
                duration_minutes=duration_minutes,
                corrected=True,
            )
            logger.info(
                "Corrected check-out: user=%s location=%s duration=%dmin",
                user_id, event.location.value, duration_minutes,
            )
            return event

    async def query_events(
        self,
        user_id: Optional[str] = None,
        location: Optional[Location] = None,
        since: Optional[datetime] = None,
    ) -> list[OccupancyEvent]:
        since = ensure_utc(since) if since is not None else None
        async with self._lock:
            return [
                e for e in self._events
                if (user_id is None or e.user_id == user_id)
                and (location is None or e.location == location)
                and (since is None or e.occurred_at >= since)
            ]

    async def aggregate_current_occupancy(self, location: Location) -> int:
        if not self.aggregate_available:
            raise StoreUnavailableError("aggregate occupancy endpoint unavailable")
        async with self._lock:
            return sum(
                1 for e in self._latest.values()
                if e.is_check_in and e.location == location
            )

    async def seed(self, events: Iterable[OccupancyEvent]) -> None:
        """Load historical events as-is, bypassing legality checks."""
        async with self._lock:
            for event in events:
                self._record(event)

    async def event_count(self) -> int:
        async with self._lock:
            return len(self._events)

    # ── Internals ────────────────────────────────────────────────────────

    def _open_session(self, user_id: str) -> OccupancyEvent | None:
        """Must be called while holding self._lock."""
        latest = self._latest.get(user_id)
        if latest is not None and latest.is_check_in:
            return latest
        return None

    def _append(
        self,
        user_id: str,
        location: Location,
        action: OccupancyAction,
        occurred_at: datetime,
        duration_minutes: int | None = None,
        corrected: bool = False,
    ) -> OccupancyEvent:
        """Must be called while holding self._lock."""
        event = OccupancyEvent(
            event_id=new_id(),
            user_id=user_id,
            location=location,
            action=action,
            occurred_at=occurred_at,
            duration_minutes=duration_minutes,
            corrected=corrected,
        )
        self._record(event)
        return event

    def _record(self, event: OccupancyEvent) -> None:
        """Must be called while holding self._lock."""
        self._events.append(event)
        latest = self._latest.get(event.user_id)
        if latest is None or event.occurred_at >= latest.occurred_at:
            self._latest[event.user_id] = event

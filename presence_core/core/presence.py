"""PresenceStateMachine — AWAY / CHECKED_IN per user, derived from the log.

Transitions:
    AWAY       --check_in-->   CHECKED_IN
    CHECKED_IN --check_out-->  AWAY

The machine never decides legality.  The event store's transition call is
the only authority, because the local view may be stale (another device,
a correction, a missed refresh).  The machine therefore has no "reject"
path: it is told what the store accepted and records it.  When the store
rejects an action nothing here is touched.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from presence_core.domain.enums import PresenceStatus
from presence_core.domain.event import OccupancyEvent, TransitionResult
from presence_core.domain.presence import PresenceState
from presence_core.store.event_store import EventStore

logger = logging.getLogger(__name__)


def _last_event(user_id: str, events: Iterable[OccupancyEvent]) -> OccupancyEvent | None:
    """Latest event of *user_id*; on equal timestamps the later-listed one wins."""
    last: OccupancyEvent | None = None
    for event in events:
        if event.user_id != user_id:
            continue
        if last is None or event.occurred_at >= last.occurred_at:
            last = event
    return last


def derive_presence(user_id: str, events: Iterable[OccupancyEvent]) -> PresenceState:
    """Presence is decided by the chronologically last event of the user.

    Input order does not matter.  Non-alternating logs are accepted as-is:
    two check-ins in a row simply mean the user is checked in since the
    later one.
    """
    last = _last_event(user_id, events)
    if last is None:
        return PresenceState(user_id=user_id)
    if last.is_check_in:
        return PresenceState(
            user_id=user_id,
            status=PresenceStatus.CHECKED_IN,
            location=last.location,
            since=last.occurred_at,
        )
    return PresenceState(user_id=user_id, status=PresenceStatus.AWAY, since=last.occurred_at)


class PresenceStateMachine:
    """Presence of one user, rebuilt from the log and advanced by accepted results."""

    __slots__ = ("_state", "last_duration_seconds", "last_duration_minutes")

    def __init__(self, state: PresenceState) -> None:
        self._state = state
        self.last_duration_seconds: Optional[int] = None
        self.last_duration_minutes: Optional[int] = None

    @classmethod
    def from_events(cls, user_id: str, events: Iterable[OccupancyEvent]) -> PresenceStateMachine:
        events = list(events)
        machine = cls(derive_presence(user_id, events))
        last = _last_event(user_id, events)
        if last is not None and not last.is_check_in:
            machine.last_duration_minutes = last.duration_minutes
        return machine

    @property
    def state(self) -> PresenceState:
        return self._state

    @property
    def is_present(self) -> bool:
        return self._state.is_present

    def apply(self, result: TransitionResult) -> PresenceState:
        """Record a transition the store has accepted."""
        if result.new_state == PresenceStatus.CHECKED_IN:
            self._state = PresenceState(
                user_id=self._state.user_id,
                status=PresenceStatus.CHECKED_IN,
                location=result.location,
                since=result.occurred_at,
            )
            self.last_duration_seconds = None
            self.last_duration_minutes = None
        else:
            self._state = PresenceState(
                user_id=self._state.user_id,
                status=PresenceStatus.AWAY,
                since=result.occurred_at,
            )
            # Surfaced verbatim to the user, not recomputed locally
            self.last_duration_seconds = result.duration_seconds
            self.last_duration_minutes = result.duration_minutes
        return self._state

    def apply_correction(self, event: OccupancyEvent) -> PresenceState:
        """Record a synthetic check-out committed by the correction workflow."""
        self._state = PresenceState(
            user_id=self._state.user_id,
            status=PresenceStatus.AWAY,
            since=event.occurred_at,
        )
        self.last_duration_seconds = None
        self.last_duration_minutes = event.duration_minutes
        return self._state


class PresenceTracker:
    """Reads a user's presence from the log on every request.

    Nothing is cached between calls: the store has other writers (another
    device, a correction, a transition that timed out after committing),
    so the log is the only view that cannot go stale.
    """

    def __init__(self, store: EventStore) -> None:
        self._store = store

    async def get(self, user_id: str) -> PresenceStateMachine:
        events = await self._store.query_events(user_id=user_id)
        machine = PresenceStateMachine.from_events(user_id, events)
        logger.debug("Loaded presence for %s: %s", user_id, machine.state.status.value)
        return machine

    async def state(self, user_id: str) -> PresenceState:
        return (await self.get(user_id)).state

    async def apply(self, result: TransitionResult) -> PresenceState:
        """Reload the user and record a transition the store just accepted."""
        machine = await self.get(result.user_id)
        return machine.apply(result)

    async def apply_correction(self, event: OccupancyEvent) -> PresenceState:
        machine = await self.get(event.user_id)
        return machine.apply_correction(event)

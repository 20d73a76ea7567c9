"""EventStore — the contract presence-core consumes from the durable log.

The durable store is an external collaborator.  Any implementation (the
in-memory reference store, a database-backed service, an RPC client)
must honour these rules:

    1. ``transition`` is the sole authority on whether an action is legal
       for the user's persisted state.  Illegal actions raise
       TransitionRejected carrying the store's code and message.
    2. ``occurred_at`` is stamped by the store, never by the caller.
    3. ``query_events`` makes no ordering promise.
    4. ``aggregate_current_occupancy`` is best-effort and may raise
       StoreUnavailableError; callers fall back to folding the log.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from presence_core.domain.enums import Location, OccupancyAction
from presence_core.domain.event import OccupancyEvent, TransitionResult


class EventStore(Protocol):
    """Protocol for the append-only occupancy log."""

    async def transition(
        self,
        user_id: str,
        action: OccupancyAction,
        location: Optional[Location] = None,
    ) -> TransitionResult:
        """Atomically append a check-in / check-out if legal."""
        ...

    async def correction_commit(self, user_id: str, duration_minutes: int) -> OccupancyEvent:
        """Close the user's open session with a synthetic check-out."""
        ...

    async def query_events(
        self,
        user_id: Optional[str] = None,
        location: Optional[Location] = None,
        since: Optional[datetime] = None,
    ) -> list[OccupancyEvent]:
        """Return matching events in no particular order."""
        ...

    async def aggregate_current_occupancy(self, location: Location) -> int:
        """Number of users currently checked in at *location*."""
        ...

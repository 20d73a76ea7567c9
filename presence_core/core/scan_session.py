"""ScanSession — one open scanner surface for one user.

Pipeline for every decode callback:

    guard.try_acquire()  ── refused ──▶ dropped (None)
          │
    adapt payload        ── unknown ──▶ NoAdapterFoundError / AdaptationError
          │
    store.transition()   ── illegal ──▶ TransitionRejected (verbatim)
          │              ── timeout ──▶ TransitionTimeoutError
    presence update → stale monitor re-track → counter refresh
          │
    guard.release()      (always, in ``finally``)

The transition call completes, fails, or times out before the guard is
released.  Nothing here retries: a transient failure is surfaced and the
user scans again once the guard is free, so a session is never committed
twice behind the user's back.

Besides the guard, a session remembers the last accepted code for a short
repeat window.  Frames that decode the same code after the first one has
already finished are dropped there instead of reaching the store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from presence_core.adapters.registry import AdapterRegistry
from presence_core.core.guard import ScanConcurrencyGuard
from presence_core.core.occupancy_counter import LiveOccupancyCounter
from presence_core.core.presence import PresenceTracker
from presence_core.core.stale_session import StaleSessionMonitor
from presence_core.domain.enums import Location, OccupancyAction
from presence_core.domain.errors import (
    ScanNotAllowedError,
    StoreUnavailableError,
    TransitionTimeoutError,
)
from presence_core.domain.scan import ScanOutcome
from presence_core.store.event_store import EventStore

logger = logging.getLogger(__name__)


class ScanSession:
    """Owns one guard and turns decoded text into at most one transition.

    Args:
        user_id: The signed-in user doing the scanning.
        location: Location used when a code does not name one.
        allowed_actions: Restrict the session, e.g. an exit scanner that
            only accepts check-out codes.  Defaults to both actions.
        timeout: Seconds to wait for the store's transition call.
        repeat_window: Seconds during which the code that was just
            accepted is ignored.
    """

    def __init__(
        self,
        user_id: str,
        location: Location,
        store: EventStore,
        tracker: PresenceTracker,
        counter: LiveOccupancyCounter,
        adapters: AdapterRegistry,
        monitor: StaleSessionMonitor | None = None,
        allowed_actions: Iterable[OccupancyAction] | None = None,
        timeout: float | None = 10.0,
        repeat_window: float = 2.0,
    ) -> None:
        self.user_id = user_id
        self.location = location
        self._store = store
        self._tracker = tracker
        self._counter = counter
        self._adapters = adapters
        self._monitor = monitor
        self._allowed = frozenset(allowed_actions or OccupancyAction)
        self._timeout = timeout
        self._repeat_window = repeat_window
        self._guard = ScanConcurrencyGuard(name=f"scan:{user_id}")
        self._last_accepted: tuple[str, float] | None = None

    @property
    def guard(self) -> ScanConcurrencyGuard:
        return self._guard

    @property
    def closed(self) -> bool:
        return self._guard.closed

    async def handle_decode(self, raw: str) -> Optional[ScanOutcome]:
        """Process one decode callback.

        Returns None when the decode was dropped (guard busy, session
        closed, or a repeat of the code just accepted).
        """
        if self._is_repeat(raw):
            logger.debug("Dropped repeat decode for %s", self.user_id)
            return None
        if not self._guard.try_acquire():
            return None
        try:
            command = self._adapters.adapt(raw)
            if command.action not in self._allowed:
                raise ScanNotAllowedError(
                    f"This scanner does not accept {command.action.value} codes"
                )
            location = command.location or self.location

            try:
                result = await asyncio.wait_for(
                    self._store.transition(self.user_id, command.action, location),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError as exc:
                logger.warning("Transition for %s timed out after %ss", self.user_id, self._timeout)
                raise TransitionTimeoutError(
                    f"No response from the event store within {self._timeout}s"
                ) from exc

            self._last_accepted = (raw.strip(), asyncio.get_running_loop().time())
            presence = await self._tracker.apply(result)
            if self._monitor is not None:
                self._monitor.track(presence)
            occupancy = await self._refresh_count(result.location)

            logger.info(
                "Scan accepted: user=%s action=%s location=%s",
                self.user_id, command.action.value, result.location.value,
            )
            return ScanOutcome(
                command=command,
                presence=presence,
                location=result.location,
                duration_seconds=result.duration_seconds,
                duration_minutes=result.duration_minutes,
                occupancy=occupancy,
            )
        finally:
            self._guard.release()

    def close(self) -> None:
        """Tear the session down; later decodes become no-ops."""
        self._guard.close()
        logger.debug("Scan session for %s closed (%d decodes dropped)", self.user_id, self._guard.dropped)

    # ── Internals ────────────────────────────────────────────────────────

    def _is_repeat(self, raw: str) -> bool:
        if self._last_accepted is None:
            return False
        code, at = self._last_accepted
        elapsed = asyncio.get_running_loop().time() - at
        return code == raw.strip() and elapsed < self._repeat_window

    async def _refresh_count(self, location: Location) -> Optional[int]:
        try:
            return await self._counter.refresh(location)
        except StoreUnavailableError as exc:
            # The transition is committed; only the derived count is stale
            logger.warning("Occupancy refresh after scan failed: %s", exc)
            self._counter.invalidate(location)
            return None

"""StaleSessionMonitor — detects check-ins left open and repairs them.

Per-user phases:
    WATCHING  → PROMPTING   elapsed since check-in >= threshold, the user is
                            checked in, and no prompt is open
    PROMPTING → CORRECTED   the store accepted a manual duration
    CORRECTED → WATCHING    immediately, with presence now AWAY

Scheduling is event-driven.  ``track()`` is called when a user's presence
is first loaded and again whenever it changes.  Each call cancels the
user's pending check and, if the session is not yet due, schedules exactly
one asyncio task that fires at the threshold boundary.  A session already
past the boundary is prompted immediately.  While a prompt is open,
re-arming is suppressed.

Tasks are keyed by session id ``(user_id, check_in_at)``.  A corrected
session is remembered so it can never prompt again; a new check-in has a
new timestamp and therefore a new session id.  Once a user is seen away
their state is dropped, so only users with an open session are held here.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from presence_core.core.occupancy_counter import LiveOccupancyCounter
from presence_core.core.presence import PresenceTracker
from presence_core.domain.correction import StaleCorrectionPrompt
from presence_core.domain.enums import CorrectionPhase, Location
from presence_core.domain.errors import (
    CorrectionValidationError,
    PresenceError,
    StoreUnavailableError,
    TransitionRejected,
)
from presence_core.domain.presence import PresenceState
from presence_core.foundation.clock import utc_now
from presence_core.store.event_store import EventStore

logger = logging.getLogger(__name__)

SessionId = tuple[str, datetime]


class _Watch:
    """Mutable per-user workflow state.  Owned by the monitor only."""

    __slots__ = ("user_id", "phase", "check_in_at", "corrected_check_in", "last_error")

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        self.phase = CorrectionPhase.WATCHING
        self.check_in_at: Optional[datetime] = None
        self.corrected_check_in: Optional[datetime] = None
        self.last_error: Optional[str] = None


class StaleSessionMonitor:
    """Watches open sessions and runs the manual correction workflow.

    Args:
        store: Event store providing ``correction_commit``.
        tracker: Presence reader updated after a successful correction.
        counter: Live occupancy refreshed after a successful correction.
        threshold: Elapsed time after which an open session is stale.
        min_minutes / max_minutes: Accepted range for manual durations.
        default_minutes: Value pre-filled in the prompt.
    """

    def __init__(
        self,
        store: EventStore,
        tracker: PresenceTracker,
        counter: LiveOccupancyCounter | None = None,
        threshold: timedelta = timedelta(hours=2),
        min_minutes: int = 1,
        max_minutes: int = 600,
        default_minutes: int = 60,
    ) -> None:
        if min_minutes < 1 or max_minutes < min_minutes:
            raise ValueError("correction bounds must satisfy 1 <= min_minutes <= max_minutes")
        self._store = store
        self._tracker = tracker
        self._counter = counter
        self._threshold = threshold
        self._min_minutes = min_minutes
        self._max_minutes = max_minutes
        self._default_minutes = default_minutes
        self._watches: dict[str, _Watch] = {}
        self._tasks: dict[SessionId, asyncio.Task] = {}

    # ── Detection ────────────────────────────────────────────────────────

    def track(self, presence: PresenceState, now: datetime | None = None) -> CorrectionPhase:
        """(Re)evaluate a user after their presence was loaded or changed.

        Must be called from a running event loop when the session is not
        yet due, since that schedules a deferred check.
        """
        watch = self._watches.setdefault(presence.user_id, _Watch(presence.user_id))

        if watch.phase == CorrectionPhase.PROMPTING:
            if presence.session_id == self._session_of(watch):
                return watch.phase
            # The session closed elsewhere (a normal checkout); the prompt is moot
            logger.info("Stale prompt for %s withdrawn: session changed", presence.user_id)
            watch.phase = CorrectionPhase.WATCHING
            watch.last_error = None

        self._cancel_pending(presence.user_id)

        if not presence.is_present or presence.since is None:
            # Nothing left to watch; an away user keeps no state here
            self.forget(presence.user_id)
            return CorrectionPhase.WATCHING

        watch.check_in_at = presence.since
        if presence.since == watch.corrected_check_in:
            return watch.phase

        now = now or utc_now()
        due_at = presence.since + self._threshold
        if now >= due_at:
            self._open_prompt(watch)
        else:
            delay = (due_at - now).total_seconds()
            session_id = (presence.user_id, presence.since)
            self._tasks[session_id] = asyncio.get_running_loop().create_task(
                self._fire_at_boundary(session_id, delay)
            )
            logger.debug("Stale check for %s scheduled in %.0fs", presence.user_id, delay)
        return watch.phase

    def phase(self, user_id: str) -> CorrectionPhase:
        watch = self._watches.get(user_id)
        return watch.phase if watch else CorrectionPhase.WATCHING

    def prompt_for(self, user_id: str) -> StaleCorrectionPrompt:
        watch = self._watches.get(user_id)
        if watch is None or watch.phase != CorrectionPhase.PROMPTING:
            return StaleCorrectionPrompt(
                default_minutes=self._default_minutes,
                min_minutes=self._min_minutes,
                max_minutes=self._max_minutes,
            )
        return StaleCorrectionPrompt(
            visible=True,
            phase=watch.phase,
            suggested_start=watch.check_in_at,
            default_minutes=self._default_minutes,
            min_minutes=self._min_minutes,
            max_minutes=self._max_minutes,
            error=watch.last_error,
        )

    def pending_sessions(self) -> list[SessionId]:
        return [sid for sid, task in self._tasks.items() if not task.done()]

    @property
    def watched_count(self) -> int:
        return len(self._watches)

    # ── Correction ───────────────────────────────────────────────────────

    def validate_minutes(self, minutes: object) -> int:
        if isinstance(minutes, bool) or not isinstance(minutes, int):
            raise CorrectionValidationError(minutes, self._min_minutes, self._max_minutes)
        if not self._min_minutes <= minutes <= self._max_minutes:
            raise CorrectionValidationError(minutes, self._min_minutes, self._max_minutes)
        return minutes

    async def submit_correction(self, user_id: str, minutes: object) -> PresenceState:
        """Commit a synthetic checkout for the user's stale session.

        Raises:
            CorrectionValidationError: Duration is not an int within bounds.
                The prompt stays open.
            TransitionRejected: No prompt is open for the user (nothing to
                correct, or already corrected), or the store refused.
            StoreUnavailableError: The store could not be reached.  The
                prompt stays open for resubmission.
        """
        watch = self._watches.get(user_id)
        if watch is None or watch.phase != CorrectionPhase.PROMPTING:
            raise TransitionRejected("no_stale_session", "No stale session awaiting correction")

        duration = self.validate_minutes(minutes)

        try:
            event = await self._store.correction_commit(user_id, duration)
        except PresenceError as exc:
            watch.last_error = str(exc)
            logger.warning("Correction for %s failed: %s", user_id, exc)
            raise

        watch.phase = CorrectionPhase.CORRECTED
        watch.corrected_check_in = watch.check_in_at
        logger.info("Stale session for %s corrected with %d minutes", user_id, duration)

        presence = await self._tracker.apply_correction(event)
        await self._refresh_count(event.location)
        watch.phase = CorrectionPhase.WATCHING
        watch.check_in_at = None
        watch.last_error = None
        return presence

    # ── Teardown ─────────────────────────────────────────────────────────

    def forget(self, user_id: str) -> None:
        self._cancel_pending(user_id)
        self._watches.pop(user_id, None)

    def close(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    # ── Internals ────────────────────────────────────────────────────────

    @staticmethod
    def _session_of(watch: _Watch) -> Optional[SessionId]:
        if watch.check_in_at is None:
            return None
        return (watch.user_id, watch.check_in_at)

    def _open_prompt(self, watch: _Watch) -> None:
        watch.phase = CorrectionPhase.PROMPTING
        watch.last_error = None
        logger.info("Stale session for %s (checked in %s): prompting", watch.user_id, watch.check_in_at)

    def _cancel_pending(self, user_id: str) -> None:
        for session_id in [sid for sid in self._tasks if sid[0] == user_id]:
            self._tasks.pop(session_id).cancel()

    async def _fire_at_boundary(self, session_id: SessionId, delay: float) -> None:
        await asyncio.sleep(delay)
        self._tasks.pop(session_id, None)
        user_id, check_in_at = session_id
        watch = self._watches.get(user_id)
        if watch is None or watch.check_in_at != check_in_at:
            return
        if watch.phase == CorrectionPhase.WATCHING:
            self._open_prompt(watch)

    async def _refresh_count(self, location: Location) -> None:
        if self._counter is None:
            return
        try:
            await self._counter.refresh(location)
        except StoreUnavailableError as exc:
            logger.warning("Occupancy refresh after correction failed: %s", exc)
            self._counter.invalidate(location)

"""ScanConcurrencyGuard — single-flight lock for one scanner session.

Optical scanners decode the same code on several consecutive frames before
the camera feed stops.  Each decode arrives as its own callback, so without
a guard one physical scan would submit several transitions.

The guard is an explicit IDLE / LOCKED state owned by one scanner session.
It is never shared between sessions.  Whoever wins ``try_acquire()`` owns
exactly one ``release()`` on every exit path.  ``close()`` tears the session
down: it releases the lock and turns every later acquisition into a refusal,
so decode callbacks that arrive after teardown are no-ops.
"""

from __future__ import annotations

import logging

from presence_core.domain.enums import GuardState

logger = logging.getLogger(__name__)


class ScanConcurrencyGuard:
    """In-memory single-flight lock.

    Not thread-safe: all callers run on the same event loop, and the check
    and the state change below happen without an intervening await.
    """

    __slots__ = ("name", "_state", "_closed", "dropped")

    def __init__(self, name: str = "scanner") -> None:
        self.name = name
        self._state = GuardState.IDLE
        self._closed = False
        self.dropped: int = 0

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def try_acquire(self) -> bool:
        """Lock the guard.  Returns False if locked already or closed."""
        if self._closed or self._state == GuardState.LOCKED:
            self.dropped += 1
            logger.debug("Guard %s refused decode (state=%s, closed=%s)", self.name, self._state.value, self._closed)
            return False
        self._state = GuardState.LOCKED
        return True

    def release(self) -> None:
        self._state = GuardState.IDLE

    def close(self) -> None:
        """Release the lock and refuse every later acquisition."""
        self._closed = True
        self._state = GuardState.IDLE

    def __repr__(self) -> str:
        return f"ScanConcurrencyGuard(name={self.name!r}, state={self._state.value}, closed={self._closed})"

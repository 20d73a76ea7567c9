"""Error taxonomy for presence-core.

Store-originated errors carry the store's code and message verbatim so the
presentation layer can show them unchanged.  NotReadyError never reaches a
user: callers catch it and defer.
"""

from __future__ import annotations


class PresenceError(Exception):
    """Base class for every error raised by presence-core."""


class CorrectionValidationError(PresenceError):
    """The manual duration entered for a stale session is not acceptable."""

    def __init__(self, value: object, minimum: int, maximum: int) -> None:
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Duration must be a whole number of minutes between {minimum} and {maximum}, got {value!r}"
        )


class TransitionRejected(PresenceError):
    """The event store refused an action for the user's persisted state."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class ScanNotAllowedError(PresenceError):
    """The scanner session does not accept this kind of code."""


class StoreUnavailableError(PresenceError):
    """The event store (or one of its endpoints) could not be reached."""


class TransitionTimeoutError(StoreUnavailableError):
    """A transition call did not complete within the configured timeout."""


class NotReadyError(PresenceError):
    """A required input (e.g. the occupancy anchor) has not been loaded yet."""

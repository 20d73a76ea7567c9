"""Controlled enumerations for the presence-core domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class Location(str, Enum):
    """Gym locations that hand out check-in codes."""

    OOKAYAMA = "ookayama"
    SUZUKAKEDAI = "suzukakedai"


class OccupancyAction(str, Enum):
    """The two kinds of scan a user can make at a location."""

    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


class PresenceStatus(str, Enum):
    """Derived presence of a single user."""

    AWAY = "away"
    CHECKED_IN = "checked_in"


class CrowdLevel(str, Enum):
    """Coarse label for a live occupancy count."""

    EMPTY = "empty"
    QUIET = "quiet"
    MODERATE = "moderate"
    BUSY = "busy"
    CROWDED = "crowded"


class UsagePeriod(str, Enum):
    """Look-back windows for a user's usage summary."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    TOTAL = "total"


class GuardState(str, Enum):
    IDLE = "idle"
    LOCKED = "locked"


class CorrectionPhase(str, Enum):
    """Per-user phase of the stale session correction workflow."""

    WATCHING = "watching"
    PROMPTING = "prompting"
    CORRECTED = "corrected"

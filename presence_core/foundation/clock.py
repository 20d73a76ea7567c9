"""Timezone-aware clock utilities.

All timestamps in presence-core MUST be UTC-aware.  This module is the
single source of "now" so tests can monkey-patch it trivially.
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_local_day(moment: datetime, tz_name: str) -> datetime:
    """Midnight of *moment*'s calendar day in *tz_name*.

    The result stays in local time so wall-clock offsets (chart hours) can
    be added to it directly.  It compares correctly with UTC datetimes.
    """
    local = moment.astimezone(ZoneInfo(tz_name))
    return local.replace(hour=0, minute=0, second=0, microsecond=0)

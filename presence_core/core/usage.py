"""Usage summary — one user's visits over a look-back period.

Visits are counted from check-ins.  Time spent comes only from the
``duration_minutes`` the store recorded on check-outs (scanned or
corrected); open sessions contribute nothing until they are closed.
"""

from __future__ import annotations

from calendar import monthrange
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from presence_core.domain.enums import UsagePeriod
from presence_core.domain.event import OccupancyEvent
from presence_core.foundation.clock import start_of_local_day
from presence_core.store.event_store import EventStore


class DailyActivity(BaseModel):
    day: date
    visits: int


class UsageSummary(BaseModel):
    user_id: str
    period: UsagePeriod
    since: Optional[datetime] = None
    visit_count: int = 0
    total_minutes: int = 0
    corrected_sessions: int = Field(0, description="Check-outs entered manually after a missed scan")
    daily_activity: list[DailyActivity] = Field(default_factory=list)


def period_start(period: UsagePeriod, now: datetime, tz_name: str) -> Optional[datetime]:
    """Start of the look-back window, or None for the whole history."""
    if period == UsagePeriod.TOTAL:
        return None
    if period == UsagePeriod.DAY:
        return start_of_local_day(now, tz_name)
    if period == UsagePeriod.WEEK:
        return now - timedelta(days=7)
    # Same day-of-month one calendar month back, clamped to that month's length
    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    return now.replace(year=year, month=month, day=min(now.day, monthrange(year, month)[1]))


def summarize_usage(
    user_id: str,
    events: Iterable[OccupancyEvent],
    period: UsagePeriod,
    tz_name: str,
    since: Optional[datetime] = None,
) -> UsageSummary:
    own = sorted(
        (e for e in events if e.user_id == user_id and (since is None or e.occurred_at >= since)),
        key=lambda e: e.occurred_at,
    )
    check_ins = [e for e in own if e.is_check_in]
    check_outs = [e for e in own if not e.is_check_in]

    per_day = Counter(start_of_local_day(e.occurred_at, tz_name).date() for e in check_ins)

    return UsageSummary(
        user_id=user_id,
        period=period,
        since=since,
        visit_count=len(check_ins),
        total_minutes=sum(e.duration_minutes or 0 for e in check_outs),
        corrected_sessions=sum(1 for e in check_outs if e.corrected),
        daily_activity=[DailyActivity(day=d, visits=n) for d, n in sorted(per_day.items())],
    )


async def usage_for(
    store: EventStore,
    user_id: str,
    period: UsagePeriod,
    now: datetime,
    tz_name: str,
) -> UsageSummary:
    since = period_start(period, now, tz_name)
    events = await store.query_events(user_id=user_id, since=since)
    return summarize_usage(user_id, events, period, tz_name, since=since)

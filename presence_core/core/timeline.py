"""TimelineReconstructor — today's occupancy curve from the log alone.

No occupancy snapshots are stored anywhere.  The curve is rebuilt on demand
from two inputs:

    (a) today's events for one location, in any order
    (b) the live occupancy count at reconstruction time (the anchor)

Backward replay:
    Start at the anchor and walk the events newest-first.  The level just
    after an event is the running count; the level just before it is one
    less for a check-in and one more for a check-out.  That "before" value
    becomes the running count for the next (older) event.  Reversing the
    collected steps yields a right-continuous step function.

    Replaying backward is preferred over forward replay from zero because
    the count at midnight is unknown (overnight stays, missed checkouts),
    whereas the anchor is authoritative.  The price is that levels before
    the first event of the day are implied rather than observed.

Bucketing:
    Fixed-width buckets across the chart window, the end hour included as
    the start of the last bucket.  A bucket shows the peak
    level seen during it: the level in effect at its start, raised by any
    step inside it.  Negative levels (inconsistent logs) display as 0.
    Buckets that start after "now" are omitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from presence_core.core.occupancy_counter import LiveOccupancyCounter
from presence_core.domain.enums import Location
from presence_core.domain.errors import NotReadyError
from presence_core.domain.event import OccupancyEvent
from presence_core.domain.timeline import OccupancySample, OccupancyStep, OccupancyTimeline
from presence_core.foundation.clock import start_of_local_day, utc_now
from presence_core.store.event_store import EventStore

logger = logging.getLogger(__name__)


def replay_backward(
    events: Iterable[OccupancyEvent],
    anchor: Optional[int],
    anchored_at: datetime,
) -> OccupancyTimeline:
    """Rebuild the step function that ends at *anchor*.

    Raises:
        NotReadyError: If the anchor count is not known yet.
    """
    if anchor is None:
        raise NotReadyError("current occupancy has not been loaded")

    newest_first = sorted(events, key=lambda e: e.occurred_at, reverse=True)
    running = anchor
    steps: list[OccupancyStep] = []
    for event in newest_first:
        if event.occurred_at > anchored_at:
            # Not reflected in the anchor count
            continue
        steps.append(OccupancyStep(at=event.occurred_at, level=running))
        running = running - 1 if event.is_check_in else running + 1

    steps.reverse()
    return OccupancyTimeline(
        anchor=anchor,
        anchored_at=anchored_at,
        initial_level=running,
        steps=steps,
    )


def bucketize(
    timeline: OccupancyTimeline,
    window_start: datetime,
    window_end: datetime,
    width: timedelta,
    now: datetime,
) -> list[OccupancySample]:
    """Peak level per bucket starting from *window_start* through *window_end*.

    *window_end* is the start of the last bucket, so a 10:00 to 18:00 window
    charts 17 slots ending with the 18:00 one.  Buckets after *now* are left out.
    """
    if width <= timedelta(0):
        raise ValueError("bucket width must be positive")

    samples: list[OccupancySample] = []
    start = window_start
    while start <= window_end and start <= now:
        end = start + width
        level = timeline.level_at(start)
        for step in timeline.steps:
            if start < step.at < end:
                level = max(level, step.level)
        samples.append(OccupancySample(bucket_start=start.astimezone(timezone.utc), level=max(0, level)))
        start = end
    return samples


@dataclass(frozen=True)
class ChartWindow:
    """Which part of the local day is charted, and how finely."""

    bucket_minutes: int = 30
    start_hour: int = 10
    end_hour: int = 18
    tz_name: str = "Asia/Tokyo"

    def __post_init__(self) -> None:
        if self.bucket_minutes <= 0:
            raise ValueError("bucket_minutes must be positive")
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError("chart hours must satisfy 0 <= start_hour < end_hour <= 24")

    @property
    def width(self) -> timedelta:
        return timedelta(minutes=self.bucket_minutes)

    def day_start(self, now: datetime) -> datetime:
        return start_of_local_day(now, self.tz_name)

    def bounds(self, now: datetime) -> tuple[datetime, datetime]:
        midnight = self.day_start(now)
        return (
            midnight + timedelta(hours=self.start_hour),
            midnight + timedelta(hours=self.end_hour),
        )


class TimelineReconstructor:
    """Pulls today's log plus the cached live count and rebuilds the curve.

    The anchor is read from the counter's cache and never fetched here: if
    it has not been loaded yet the reconstruction is deferred (None), not
    guessed.
    """

    def __init__(
        self,
        store: EventStore,
        counter: LiveOccupancyCounter,
        window: ChartWindow | None = None,
    ) -> None:
        self._store = store
        self._counter = counter
        self._window = window or ChartWindow()

    @property
    def window(self) -> ChartWindow:
        return self._window

    async def reconstruct(
        self,
        location: Location,
        now: datetime | None = None,
    ) -> OccupancyTimeline:
        """Rebuild today's step function for *location*.

        Raises:
            NotReadyError: If the live count has not been loaded yet.
        """
        now = now or utc_now()
        anchor = self._counter.current(location)
        if anchor is None:
            raise NotReadyError(f"occupancy anchor for {location.value} not loaded")
        events = await self._store.query_events(
            location=location,
            since=self._window.day_start(now),
        )
        return replay_backward(events, anchor, now)

    async def buckets(
        self,
        location: Location,
        now: datetime | None = None,
    ) -> Optional[list[OccupancySample]]:
        """Today's chart buckets for *location*, or None while not ready."""
        now = now or utc_now()
        try:
            timeline = await self.reconstruct(location, now)
        except NotReadyError:
            logger.debug("Timeline for %s deferred: anchor not loaded", location.value)
            return None
        start, end = self._window.bounds(now)
        samples = bucketize(timeline, start, end, self._window.width, now)
        logger.debug("Timeline for %s: %d buckets from %d events", location.value, len(samples), len(timeline.steps))
        return samples

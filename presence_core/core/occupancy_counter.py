"""LiveOccupancyCounter — how many users are checked in per location.

Primary path: one aggregate call per location on the event store.
Fallback path (only when the aggregate raises StoreUnavailableError): fetch
the location's full log and fold it client-side.

Fold rule — most recent action wins:
    Walk the log newest-first.  The first event seen for a user decides
    that user; every older event of theirs is ignored.  Raw check-in /
    check-out tallies are never compared, so duplicate check-ins left by a
    missed checkout cannot inflate the count.

The last value fetched per location is cached for readers that must not
await (the timeline anchor).  Every refresh replaces it and the scan path
refreshes after each accepted transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from presence_core.domain.enums import CrowdLevel, Location
from presence_core.domain.errors import StoreUnavailableError
from presence_core.domain.event import OccupancyEvent
from presence_core.foundation.clock import utc_now
from presence_core.store.event_store import EventStore

logger = logging.getLogger(__name__)


def fold_current_occupancy(events: Iterable[OccupancyEvent]) -> int:
    """Count users whose most recent event is a check-in."""
    # Reversing a stable ascending sort puts the later-listed of two equal
    # timestamps first, matching derive_presence
    newest_first = reversed(sorted(events, key=lambda e: e.occurred_at))
    resolved: dict[str, bool] = {}
    for event in newest_first:
        if event.user_id not in resolved:
            resolved[event.user_id] = event.is_check_in
    return sum(1 for present in resolved.values() if present)


@dataclass(frozen=True)
class CrowdThresholds:
    """Upper bounds (inclusive) for each crowd label above EMPTY."""

    quiet_max: int = 1
    moderate_max: int = 3
    busy_max: int = 4


def crowd_level(count: int, thresholds: CrowdThresholds | None = None) -> CrowdLevel:
    t = thresholds or CrowdThresholds()
    if count <= 0:
        return CrowdLevel.EMPTY
    if count <= t.quiet_max:
        return CrowdLevel.QUIET
    if count <= t.moderate_max:
        return CrowdLevel.MODERATE
    if count <= t.busy_max:
        return CrowdLevel.BUSY
    return CrowdLevel.CROWDED


class OccupancySnapshot:
    """Counts for every location at one moment."""

    __slots__ = ("counts", "taken_at", "thresholds")

    def __init__(
        self,
        counts: dict[Location, int],
        taken_at: datetime,
        thresholds: CrowdThresholds | None = None,
    ) -> None:
        self.counts = counts
        self.taken_at = taken_at
        self.thresholds = thresholds or CrowdThresholds()

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> dict:
        return {
            "taken_at": self.taken_at.isoformat(),
            "total": self.total,
            "locations": {
                loc.value: {
                    "count": count,
                    "crowd_level": crowd_level(count, self.thresholds).value,
                }
                for loc, count in self.counts.items()
            },
        }


class LiveOccupancyCounter:
    """Current occupancy per location, via aggregate or log fold."""

    def __init__(self, store: EventStore, thresholds: CrowdThresholds | None = None) -> None:
        self._store = store
        self._thresholds = thresholds or CrowdThresholds()
        self._cache: dict[Location, int] = {}
        self.fallback_count: int = 0

    # ── Public API ───────────────────────────────────────────────────────

    async def refresh(self, location: Location) -> int:
        """Fetch the live count for *location* and replace the cached value."""
        try:
            count = await self._store.aggregate_current_occupancy(location)
        except StoreUnavailableError as exc:
            logger.warning("Aggregate occupancy unavailable for %s (%s); folding log", location.value, exc)
            self.fallback_count += 1
            events = await self._store.query_events(location=location)
            count = fold_current_occupancy(events)
        self._cache[location] = count
        logger.debug("Occupancy %s = %d", location.value, count)
        return count

    def current(self, location: Location) -> Optional[int]:
        """Last fetched count, or None if never fetched since invalidation."""
        return self._cache.get(location)

    def invalidate(self, location: Location | None = None) -> None:
        if location is None:
            self._cache.clear()
        else:
            self._cache.pop(location, None)

    async def snapshot(self) -> OccupancySnapshot:
        """Refresh every location and return the combined counts."""
        counts = {loc: await self.refresh(loc) for loc in Location}
        return OccupancySnapshot(counts, utc_now(), self._thresholds)

    def crowd_level(self, count: int) -> CrowdLevel:
        return crowd_level(count, self._thresholds)

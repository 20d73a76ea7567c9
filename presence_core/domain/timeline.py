"""Occupancy timeline models — a step function rebuilt from the event log.

These are pure data structures produced for display and thrown away after
the render.  No snapshot of occupancy is ever stored.
"""

from __future__ import annotations

from bisect import bisect_right
from datetime import datetime

from pydantic import BaseModel, Field


class OccupancyStep(BaseModel):
    """The level that takes effect at ``at`` and holds until the next step."""

    at: datetime
    level: int

    model_config = {"frozen": True}


class OccupancyTimeline(BaseModel):
    """Right-continuous occupancy curve for one location.

    ``initial_level`` is the level before the first step.  Levels before the
    day's first event are not authoritative: they only reflect what the
    anchor count implies, so people who stayed overnight or a missed
    checkout can push them off.  Levels are not clamped here.
    """

    anchor: int = Field(..., description="Occupancy at reconstruction time")
    anchored_at: datetime
    initial_level: int
    steps: list[OccupancyStep] = Field(default_factory=list)

    model_config = {"frozen": True}

    def level_at(self, moment: datetime) -> int:
        """Last known level at or before *moment*."""
        times = [s.at for s in self.steps]
        idx = bisect_right(times, moment)
        if idx == 0:
            return self.initial_level
        return self.steps[idx - 1].level


class OccupancySample(BaseModel):
    """One chart bucket: the peak level observed during the bucket."""

    bucket_start: datetime
    level: int = Field(..., ge=0)

    model_config = {"frozen": True}

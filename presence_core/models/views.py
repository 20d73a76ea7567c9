"""Pydantic models served to the presentation layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from presence_core.domain.correction import StaleCorrectionPrompt
from presence_core.domain.enums import CrowdLevel, Location, PresenceStatus
from presence_core.domain.presence import PresenceState
from presence_core.domain.timeline import OccupancySample


class PresenceView(BaseModel):
    """A user's presence plus the correction prompt, if one is open."""

    user_id: str
    is_present: bool
    status: PresenceStatus
    location: Optional[Location] = None
    since: Optional[datetime] = None
    last_duration_minutes: Optional[int] = None
    stale_correction_prompt: StaleCorrectionPrompt

    @classmethod
    def build(
        cls,
        state: PresenceState,
        prompt: StaleCorrectionPrompt,
        last_duration_minutes: Optional[int] = None,
    ) -> PresenceView:
        return cls(
            user_id=state.user_id,
            is_present=state.is_present,
            status=state.status,
            location=state.location,
            since=state.since,
            last_duration_minutes=last_duration_minutes,
            stale_correction_prompt=prompt,
        )


class TimelineView(BaseModel):
    """Today's chart for one location.  ``ready`` is False until the live
    count has been loaded; the buckets are empty in that case."""

    location: Location
    ready: bool
    current_occupancy: Optional[int] = None
    crowd_level: Optional[CrowdLevel] = None
    bucket_minutes: int
    occupancy_buckets: list[OccupancySample] = Field(default_factory=list)


class DashboardView(BaseModel):
    """Everything the dashboard renders for one user and location."""

    presence: PresenceView
    timeline: TimelineView


class CorrectionRequest(BaseModel):
    duration_minutes: int = Field(..., description="Approximate length of the stay, in minutes")

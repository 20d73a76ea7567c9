"""OccupancyEvent — the immutable unit of the occupancy log.

An event records one accepted check-in or check-out.  Events are created
exclusively by the event store in response to a validated scan or a manual
correction; the store assigns the id and stamps ``occurred_at`` with its own
clock.  Readers must tolerate logs that do not alternate cleanly (a missed
checkout leaves two check-ins in a row) and must not assume any ordering.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from presence_core.domain.enums import Location, OccupancyAction, PresenceStatus
from presence_core.foundation.clock import ensure_utc


class OccupancyEvent(BaseModel):
    """A single check-in or check-out record."""

    event_id: UUID = Field(..., description="Unique identifier assigned by the event store")
    user_id: str = Field(..., min_length=1, max_length=256)
    location: Location
    action: OccupancyAction
    occurred_at: datetime = Field(..., description="Server timestamp (UTC-aware)")
    duration_minutes: Optional[int] = Field(
        default=None,
        ge=0,
        description="Session length, set on check-outs only",
    )
    corrected: bool = Field(
        default=False,
        description="True for synthetic check-outs created by the correction workflow",
    )

    model_config = {"frozen": True}

    @field_validator("occurred_at")
    @classmethod
    def occurred_at_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_check_in(self) -> bool:
        return self.action == OccupancyAction.CHECK_IN


class TransitionResult(BaseModel):
    """What the store returns after accepting a check-in or check-out."""

    user_id: str
    new_state: PresenceStatus
    location: Location
    occurred_at: datetime
    duration_seconds: Optional[int] = None
    duration_minutes: Optional[int] = None

    model_config = {"frozen": True}

    @field_validator("occurred_at")
    @classmethod
    def occurred_at_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)

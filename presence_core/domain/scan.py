"""ScanCommand — a decoded scan, normalised and validated."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from presence_core.domain.enums import Location, OccupancyAction
from presence_core.domain.presence import PresenceState


class ScanCommand(BaseModel):
    """What one physical scan asks for.

    ``location`` is None when the code does not name one; the scanner
    session then supplies its own.
    """

    action: OccupancyAction
    location: Optional[Location] = None

    model_config = {"frozen": True}


class ScanOutcome(BaseModel):
    """Result of one accepted scan, as shown to the user."""

    command: ScanCommand
    presence: PresenceState
    location: Location
    duration_seconds: Optional[int] = None
    duration_minutes: Optional[int] = None
    occupancy: Optional[int] = Field(
        default=None,
        description="Live count at the location after the scan, if it could be fetched",
    )

    model_config = {"frozen": True}

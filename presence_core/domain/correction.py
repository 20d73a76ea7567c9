"""StaleCorrectionPrompt — what the UI needs to show the correction dialog."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from presence_core.domain.enums import CorrectionPhase


class StaleCorrectionPrompt(BaseModel):
    visible: bool = False
    phase: CorrectionPhase = CorrectionPhase.WATCHING
    suggested_start: Optional[datetime] = Field(
        default=None,
        description="Check-in time of the session that is missing its checkout",
    )
    default_minutes: int = 60
    min_minutes: int = 1
    max_minutes: int = 600
    error: Optional[str] = Field(default=None, description="Message from the last failed submission")

    model_config = {"frozen": True}

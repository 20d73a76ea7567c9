"""PresenceState — derived AWAY / CHECKED_IN view of one user.

Never persisted.  Recomputed from the log on load and replaced after every
successful transition.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from presence_core.domain.enums import Location, PresenceStatus


class PresenceState(BaseModel):
    user_id: str
    status: PresenceStatus = PresenceStatus.AWAY
    location: Optional[Location] = None
    since: Optional[datetime] = None

    model_config = {"frozen": True}

    @property
    def is_present(self) -> bool:
        return self.status == PresenceStatus.CHECKED_IN

    @property
    def session_id(self) -> Optional[tuple[str, datetime]]:
        """Identifies the open session, or None while away."""
        if not self.is_present or self.since is None:
            return None
        return (self.user_id, self.since)

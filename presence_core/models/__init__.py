from presence_core.models.views import (
    CorrectionRequest,
    DashboardView,
    PresenceView,
    TimelineView,
)

__all__ = ["CorrectionRequest", "DashboardView", "PresenceView", "TimelineView"]

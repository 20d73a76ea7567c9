"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "presence-core"
    debug: bool = False
    log_level: str = "INFO"

    # Local day boundary for "today" queries and chart buckets
    timezone: str = "Asia/Tokyo"

    # Stale session detection / manual correction
    stale_threshold_minutes: int = 120
    correction_min_minutes: int = 1
    correction_max_minutes: int = 600
    correction_default_minutes: int = 60

    # Scanning
    transition_timeout_seconds: float = 10.0
    scan_repeat_window_seconds: float = 2.0

    # Occupancy chart
    bucket_minutes: int = 30
    chart_start_hour: int = 10
    chart_end_hour: int = 18

    # Crowd labels: count <= quiet_max is "quiet", <= moderate_max "moderate", ...
    crowd_quiet_max: int = 1
    crowd_moderate_max: int = 3
    crowd_busy_max: int = 4

    model_config = {"env_prefix": "PRESENCE_"}


settings = Settings()

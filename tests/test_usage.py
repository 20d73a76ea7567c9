"""Tests for per-user usage summaries."""

from datetime import date, datetime, timedelta, timezone

import pytest

from presence_core.core.usage import period_start, summarize_usage, usage_for
from presence_core.domain.enums import UsagePeriod
from presence_core.store.memory_store import InMemoryEventStore

from tests.test_events import _BASE, _in, _out


class TestPeriodStart:
    def test_total_has_no_start(self) -> None:
        assert period_start(UsagePeriod.TOTAL, _BASE, "UTC") is None

    def test_day_starts_at_local_midnight(self) -> None:
        # 01:00 UTC is 10:00 in Tokyo; local midnight is 15:00 UTC the day before
        start = period_start(UsagePeriod.DAY, _BASE, "Asia/Tokyo")
        assert start == datetime(2026, 3, 1, 15, 0, tzinfo=timezone.utc)

    def test_week_is_seven_days(self) -> None:
        assert period_start(UsagePeriod.WEEK, _BASE, "UTC") == _BASE - timedelta(days=7)

    def test_month_clamps_to_shorter_month(self) -> None:
        now = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)
        assert period_start(UsagePeriod.MONTH, now, "UTC") == datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)

    def test_month_wraps_year(self) -> None:
        now = datetime(2026, 1, 15, tzinfo=timezone.utc)
        assert period_start(UsagePeriod.MONTH, now, "UTC") == datetime(2025, 12, 15, tzinfo=timezone.utc)


class TestSummarizeUsage:
    def test_visits_and_minutes(self) -> None:
        events = [
            _in("u1", _BASE),
            _out("u1", _BASE + timedelta(minutes=50), duration_minutes=50),
            _in("u1", _BASE + timedelta(days=1)),
            _out("u1", _BASE + timedelta(days=1, hours=3), duration_minutes=45, corrected=True),
            _in("u1", _BASE + timedelta(days=2)),  # still open
            _in("u2", _BASE),
        ]
        summary = summarize_usage("u1", events, UsagePeriod.TOTAL, "UTC")
        assert summary.visit_count == 3
        assert summary.total_minutes == 95
        assert summary.corrected_sessions == 1
        assert [d.day for d in summary.daily_activity] == [
            date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4),
        ]

    def test_events_before_since_ignored(self) -> None:
        events = [_in("u1", _BASE - timedelta(days=10)), _in("u1", _BASE)]
        summary = summarize_usage("u1", events, UsagePeriod.WEEK, "UTC", since=_BASE - timedelta(days=7))
        assert summary.visit_count == 1

    def test_days_grouped_in_local_time(self) -> None:
        # 16:00 UTC on the 2nd is already the 3rd in Tokyo
        events = [_in("u1", datetime(2026, 3, 2, 16, 0, tzinfo=timezone.utc))]
        summary = summarize_usage("u1", events, UsagePeriod.TOTAL, "Asia/Tokyo")
        assert summary.daily_activity[0].day == date(2026, 3, 3)

    def test_no_events(self) -> None:
        summary = summarize_usage("u1", [], UsagePeriod.TOTAL, "UTC")
        assert summary.visit_count == 0
        assert summary.daily_activity == []


class TestUsageFor:
    @pytest.mark.asyncio
    async def test_reads_from_store(self) -> None:
        store = InMemoryEventStore()
        await store.seed([
            _in("u1", _BASE - timedelta(days=20)),
            _out("u1", _BASE - timedelta(days=20) + timedelta(hours=1), duration_minutes=60),
            _in("u1", _BASE - timedelta(days=2)),
            _out("u1", _BASE - timedelta(days=2) + timedelta(minutes=30), duration_minutes=30),
        ])
        week = await usage_for(store, "u1", UsagePeriod.WEEK, _BASE, "UTC")
        assert week.visit_count == 1
        assert week.total_minutes == 30

        total = await usage_for(store, "u1", UsagePeriod.TOTAL, _BASE, "UTC")
        assert total.visit_count == 2
        assert total.total_minutes == 90

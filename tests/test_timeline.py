"""Tests for backward timeline replay and bucketing."""

from datetime import timedelta

import pytest

from presence_core.core.occupancy_counter import LiveOccupancyCounter
from presence_core.core.timeline import (
    ChartWindow,
    TimelineReconstructor,
    bucketize,
    replay_backward,
)
from presence_core.domain.enums import Location
from presence_core.domain.errors import NotReadyError
from presence_core.store.memory_store import InMemoryEventStore

from tests.test_events import _BASE, _in, _out

_UTC_DAY = ChartWindow(bucket_minutes=60, start_hour=0, end_hour=24, tz_name="UTC")


class TestReplayBackward:
    def test_single_visit_curve(self) -> None:
        events = [_in("u1", _BASE), _out("u1", _BASE + timedelta(hours=1))]
        timeline = replay_backward(events, anchor=0, anchored_at=_BASE + timedelta(hours=2))
        assert timeline.level_at(_BASE + timedelta(minutes=30)) == 1
        assert timeline.level_at(_BASE + timedelta(minutes=90)) == 0
        assert timeline.initial_level == 0

    def test_level_changes_exactly_at_event_time(self) -> None:
        events = [_in("u1", _BASE), _out("u1", _BASE + timedelta(hours=1))]
        timeline = replay_backward(events, anchor=0, anchored_at=_BASE + timedelta(hours=2))
        assert timeline.level_at(_BASE - timedelta(seconds=1)) == 0
        assert timeline.level_at(_BASE) == 1
        assert timeline.level_at(_BASE + timedelta(hours=1)) == 0

    def test_replay_lands_on_anchor(self) -> None:
        events = [
            _in("u1", _BASE),
            _in("u2", _BASE + timedelta(minutes=5)),
            _out("u1", _BASE + timedelta(minutes=40)),
            _in("u3", _BASE + timedelta(minutes=50)),
            _in("u4", _BASE + timedelta(minutes=55)),
        ]
        timeline = replay_backward(list(reversed(events)), anchor=5, anchored_at=_BASE + timedelta(hours=1))
        deltas = sum(1 if e.is_check_in else -1 for e in events)
        assert timeline.initial_level + deltas == timeline.anchor
        assert timeline.steps[-1].level == 5
        assert [s.at for s in timeline.steps] == sorted(s.at for s in timeline.steps)

    def test_events_after_anchor_are_ignored(self) -> None:
        events = [_in("u1", _BASE), _in("u2", _BASE + timedelta(hours=3))]
        timeline = replay_backward(events, anchor=1, anchored_at=_BASE + timedelta(hours=1))
        assert len(timeline.steps) == 1
        assert timeline.initial_level == 0

    def test_missing_anchor_is_not_ready(self) -> None:
        with pytest.raises(NotReadyError):
            replay_backward([], anchor=None, anchored_at=_BASE)

    def test_no_events_is_flat_at_anchor(self) -> None:
        timeline = replay_backward([], anchor=3, anchored_at=_BASE)
        assert timeline.level_at(_BASE - timedelta(hours=5)) == 3


class TestBucketize:
    def test_hourly_visit_buckets(self) -> None:
        events = [_in("u1", _BASE), _out("u1", _BASE + timedelta(hours=1))]
        timeline = replay_backward(events, anchor=0, anchored_at=_BASE + timedelta(hours=2))
        samples = bucketize(
            timeline,
            window_start=_BASE,
            window_end=_BASE + timedelta(hours=4),
            width=timedelta(minutes=30),
            now=_BASE + timedelta(hours=2),
        )
        assert [s.level for s in samples] == [1, 1, 0, 0, 0]

    def test_short_visit_inside_bucket_shows_as_peak(self) -> None:
        events = [_in("u1", _BASE + timedelta(minutes=10)), _out("u1", _BASE + timedelta(minutes=20))]
        timeline = replay_backward(events, anchor=0, anchored_at=_BASE + timedelta(hours=1))
        samples = bucketize(timeline, _BASE, _BASE + timedelta(hours=1), timedelta(minutes=30), _BASE + timedelta(hours=1))
        assert [s.level for s in samples] == [1, 0, 0]

    def test_empty_buckets_inherit_previous_level(self) -> None:
        timeline = replay_backward([_in("u1", _BASE)], anchor=1, anchored_at=_BASE + timedelta(hours=3))
        samples = bucketize(timeline, _BASE, _BASE + timedelta(hours=3), timedelta(hours=1), _BASE + timedelta(hours=3))
        assert [s.level for s in samples] == [1, 1, 1, 1]

    def test_inconsistent_log_never_shows_negative(self) -> None:
        # A check-in today while the anchor says nobody is here
        timeline = replay_backward([_in("u1", _BASE)], anchor=0, anchored_at=_BASE + timedelta(hours=1))
        assert timeline.initial_level == -1
        samples = bucketize(
            timeline,
            _BASE - timedelta(hours=1),
            _BASE + timedelta(hours=1),
            timedelta(minutes=30),
            _BASE + timedelta(hours=1),
        )
        assert samples
        assert all(s.level >= 0 for s in samples)

    def test_future_buckets_omitted(self) -> None:
        timeline = replay_backward([], anchor=2, anchored_at=_BASE)
        samples = bucketize(timeline, _BASE, _BASE + timedelta(hours=8), timedelta(minutes=30), _BASE + timedelta(minutes=45))
        assert [s.bucket_start for s in samples] == [_BASE, _BASE + timedelta(minutes=30)]

    def test_zero_width_rejected(self) -> None:
        timeline = replay_backward([], anchor=0, anchored_at=_BASE)
        with pytest.raises(ValueError):
            bucketize(timeline, _BASE, _BASE + timedelta(hours=1), timedelta(0), _BASE)


class TestChartWindow:
    def test_default_window_is_tokyo_business_hours(self) -> None:
        # _BASE is 10:00 in Tokyo
        start, end = ChartWindow().bounds(_BASE + timedelta(hours=3))
        assert start == _BASE
        assert end == _BASE + timedelta(hours=8)

    def test_default_window_charts_seventeen_slots(self) -> None:
        window = ChartWindow()
        now = _BASE + timedelta(hours=8, minutes=30)
        start, end = window.bounds(now)
        timeline = replay_backward([], anchor=0, anchored_at=now)
        samples = bucketize(timeline, start, end, window.width, now)
        assert len(samples) == 17
        assert samples[-1].bucket_start == _BASE + timedelta(hours=8)

    def test_invalid_hours_rejected(self) -> None:
        with pytest.raises(ValueError):
            ChartWindow(start_hour=18, end_hour=10)

    def test_invalid_bucket_width_rejected(self) -> None:
        with pytest.raises(ValueError):
            ChartWindow(bucket_minutes=0)


class TestTimelineReconstructor:
    @pytest.mark.asyncio
    async def test_not_ready_until_counter_loaded(self) -> None:
        store = InMemoryEventStore()
        counter = LiveOccupancyCounter(store)
        reconstructor = TimelineReconstructor(store, counter, _UTC_DAY)
        assert await reconstructor.buckets(Location.OOKAYAMA, now=_BASE) is None
        with pytest.raises(NotReadyError):
            await reconstructor.reconstruct(Location.OOKAYAMA, now=_BASE)

    @pytest.mark.asyncio
    async def test_buckets_from_store(self) -> None:
        store = InMemoryEventStore()
        await store.seed([
            _in("u1", _BASE),
            _out("u1", _BASE + timedelta(hours=1)),
            _in("u2", _BASE, location="suzukakedai"),
        ])
        counter = LiveOccupancyCounter(store)
        await counter.refresh(Location.OOKAYAMA)
        reconstructor = TimelineReconstructor(store, counter, _UTC_DAY)

        samples = await reconstructor.buckets(Location.OOKAYAMA, now=_BASE + timedelta(hours=2))
        # _BASE is 01:00 UTC: buckets at 00:00, 01:00, 02:00, 03:00
        assert [s.level for s in samples] == [0, 1, 0, 0]

    @pytest.mark.asyncio
    async def test_yesterdays_events_are_not_replayed(self) -> None:
        store = InMemoryEventStore()
        # Checked in yesterday and never left: today's curve starts at 1
        await store.seed([_in("u1", _BASE - timedelta(days=1))])
        counter = LiveOccupancyCounter(store)
        await counter.refresh(Location.OOKAYAMA)
        reconstructor = TimelineReconstructor(store, counter, _UTC_DAY)

        timeline = await reconstructor.reconstruct(Location.OOKAYAMA, now=_BASE)
        assert timeline.steps == []
        assert timeline.initial_level == 1

"""Tests for the ScanConcurrencyGuard."""

from presence_core.core.guard import ScanConcurrencyGuard
from presence_core.domain.enums import GuardState


class TestScanConcurrencyGuard:
    def test_new_guard_is_idle(self) -> None:
        guard = ScanConcurrencyGuard()
        assert guard.state == GuardState.IDLE
        assert not guard.closed

    def test_first_acquire_succeeds(self) -> None:
        guard = ScanConcurrencyGuard()
        assert guard.try_acquire() is True
        assert guard.state == GuardState.LOCKED

    def test_second_acquire_without_release_fails(self) -> None:
        guard = ScanConcurrencyGuard()
        assert guard.try_acquire() is True
        assert guard.try_acquire() is False
        assert guard.dropped == 1

    def test_release_allows_next_acquire(self) -> None:
        guard = ScanConcurrencyGuard()
        guard.try_acquire()
        guard.release()
        assert guard.state == GuardState.IDLE
        assert guard.try_acquire() is True

    def test_close_releases_and_refuses_forever(self) -> None:
        guard = ScanConcurrencyGuard()
        guard.try_acquire()
        guard.close()
        assert guard.state == GuardState.IDLE
        assert guard.try_acquire() is False
        guard.release()
        assert guard.try_acquire() is False

    def test_guards_are_independent_per_session(self) -> None:
        first = ScanConcurrencyGuard("scan:a")
        second = ScanConcurrencyGuard("scan:b")
        assert first.try_acquire() is True
        assert second.try_acquire() is True

"""
Tests for the Clock and Timer Abstraction.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from core.clock import IntervalTimer, MockClock, SystemClock


class TestSystemClock:
    """Tests for SystemClock."""

    def test_now_is_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None

    def test_now_in_given_zone(self):
        assert SystemClock(timezone.utc).now().utcoffset() == timedelta(0)

    def test_timer_fires_and_cancels(self):
        fired = threading.Event()
        timer = SystemClock().create_timer(fired.set, 0, 60)

        try:
            assert fired.wait(timeout=2)
        finally:
            timer.cancel()

        assert timer.cancelled


class TestIntervalTimer:
    """Tests for IntervalTimer."""

    def test_repeats_until_cancelled(self):
        count = 0
        done = threading.Event()

        def callback():
            nonlocal count
            count += 1
            if count == 3:
                done.set()

        timer = IntervalTimer(callback, 0, 0.01)
        try:
            assert done.wait(timeout=2)
        finally:
            timer.cancel()

        assert count >= 3

    def test_callback_error_does_not_stop_timer(self):
        calls = []
        done = threading.Event()

        def callback():
            calls.append(1)
            if len(calls) == 2:
                done.set()
            raise RuntimeError("callback failure")

        timer = IntervalTimer(callback, 0, 0.01)
        try:
            assert done.wait(timeout=2)
        finally:
            timer.cancel()


class TestMockClock:
    """Tests for MockClock."""

    def test_set_time(self):
        clock = MockClock(datetime(2025, 1, 1))
        clock.set_time(datetime(2025, 6, 1))

        assert clock.now() == datetime(2025, 6, 1)

    def test_freeze_restores_time(self):
        clock = MockClock(datetime(2025, 1, 1))

        with clock.freeze(datetime(2030, 1, 1)):
            assert clock.now() == datetime(2030, 1, 1)

        assert clock.now() == datetime(2025, 1, 1)

    def test_zero_due_fires_immediately(self):
        clock = MockClock(datetime(2025, 1, 1))
        fired = []

        clock.create_timer(lambda: fired.append(clock.now()), 0, 60)

        assert fired == [datetime(2025, 1, 1)]
        assert clock.timers_created == 1

    def test_advance_fires_each_due_time(self):
        clock = MockClock(datetime(2025, 1, 1))
        fired = []

        clock.create_timer(lambda: fired.append(clock.now()), 30, 60)
        clock.advance(minutes=2)

        assert fired == [
            datetime(2025, 1, 1, 0, 0, 30),
            datetime(2025, 1, 1, 0, 1, 30),
        ]
        assert clock.now() == datetime(2025, 1, 1, 0, 2)

    def test_one_shot_timer_removed_after_firing(self):
        clock = MockClock(datetime(2025, 1, 1))
        fired = []

        clock.create_timer(lambda: fired.append(1), 10, 0)
        clock.advance(seconds=60)

        assert fired == [1]
        assert clock.active_timers == 0

    def test_cancelled_timer_never_fires(self):
        clock = MockClock(datetime(2025, 1, 1))
        fired = []

        timer = clock.create_timer(lambda: fired.append(1), 10, 10)
        timer.cancel()
        clock.advance(minutes=1)

        assert fired == []
        assert timer.cancelled
        assert clock.active_timers == 0

    @pytest.mark.parametrize("seconds", [0, 5])
    def test_advance_without_timers(self, seconds):
        clock = MockClock(datetime(2025, 1, 1))
        clock.advance(seconds)

        assert clock.now() == datetime(2025, 1, 1) + timedelta(seconds=seconds)

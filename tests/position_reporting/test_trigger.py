"""
Tests for the Periodic Trigger.

============================================================
PURPOSE
============================================================
Tests for trigger lifecycle and firing, covering:
1. Construction validation
2. Start / stop idempotence
3. Immediate first tick and periodic ticks
4. Silence after stop and close
5. Subscriber fan-out and failure isolation

============================================================
"""

import contextlib
import threading
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from core.clock import MockClock
from core.exceptions import ConfigurationError, TriggerError
from position_reporting.trigger import PeriodicTrigger, TriggerState


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    return MockClock(datetime(2025, 9, 26, 15, 0))


@pytest.fixture
def trigger(clock):
    return PeriodicTrigger(clock, timedelta(minutes=5))


@pytest.fixture
def received(trigger):
    """Timestamps of every event delivered to one subscriber."""
    events = []
    trigger.subscribe(lambda event: events.append(event.fired_at))
    return events


class ReleaseHookLock:
    """Lock that runs a callback once, right after its first release."""

    def __init__(self, hook):
        self._lock = threading.Lock()
        self._hook = hook

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._lock.release()
        hook, self._hook = self._hook, None
        if hook is not None:
            hook()


# ============================================================
# CONSTRUCTION TESTS
# ============================================================

class TestConstruction:
    """Tests for trigger construction."""

    def test_clock_required(self):
        with pytest.raises(ConfigurationError):
            PeriodicTrigger(None, timedelta(minutes=1))

    @pytest.mark.parametrize("interval", [timedelta(0), timedelta(seconds=-1), None])
    def test_non_positive_interval_rejected(self, clock, interval):
        with pytest.raises(ValueError):
            PeriodicTrigger(clock, interval)

    def test_initial_state(self, trigger):
        assert trigger.state == TriggerState.IDLE
        assert not trigger.is_running


# ============================================================
# LIFECYCLE TESTS
# ============================================================

class TestLifecycle:
    """Tests for start / stop / close."""

    def test_start_twice_creates_one_timer(self, trigger, clock):
        trigger.start()
        trigger.start()

        assert clock.timers_created == 1
        assert trigger.state == TriggerState.RUNNING

    def test_start_twice_logs_warning(self, trigger, caplog):
        trigger.start()
        trigger.start()

        assert "already running" in caplog.text

    def test_stop_twice_cancels_once(self):
        timer = MagicMock()
        clock = MagicMock()
        clock.create_timer.return_value = timer
        trigger = PeriodicTrigger(clock, timedelta(minutes=1))

        trigger.start()
        trigger.stop()
        trigger.stop()

        timer.cancel.assert_called_once()
        assert trigger.state == TriggerState.STOPPED

    def test_timer_created_with_zero_due_and_interval_period(self):
        clock = MagicMock()
        trigger = PeriodicTrigger(clock, timedelta(minutes=2))

        trigger.start()

        args = clock.create_timer.call_args.args
        assert args[1] == 0
        assert args[2] == 120.0

    def test_stop_releases_timer(self, trigger, clock):
        trigger.start()
        trigger.stop()

        assert clock.active_timers == 0

    def test_stop_when_idle_is_noop(self, trigger, caplog):
        trigger.stop()

        assert trigger.state == TriggerState.IDLE
        assert "not running" in caplog.text

    def test_restart_after_stop_rejected(self, trigger):
        trigger.start()
        trigger.stop()

        with pytest.raises(TriggerError):
            trigger.start()

    def test_close_idle_trigger_is_terminal(self, trigger, clock):
        trigger.close()

        assert trigger.state == TriggerState.STOPPED
        with pytest.raises(TriggerError):
            trigger.start()
        assert clock.timers_created == 0

    def test_close_running_trigger_cancels_timer(self, trigger, clock):
        trigger.start()
        trigger.close()

        assert trigger.state == TriggerState.STOPPED
        assert clock.active_timers == 0

    def test_start_racing_close_leaves_no_timer(self, trigger, clock):
        def racing_start():
            with contextlib.suppress(TriggerError):
                trigger.start()

        # start() runs on "another thread" right after close() releases the lock
        trigger._lock = ReleaseHookLock(racing_start)
        trigger.close()

        assert trigger.state == TriggerState.STOPPED
        assert clock.active_timers == 0

    def test_context_manager_stops(self, clock):
        with PeriodicTrigger(clock, timedelta(minutes=1)) as trigger:
            trigger.start()
            assert clock.active_timers == 1

        assert trigger.state == TriggerState.STOPPED
        assert clock.active_timers == 0


# ============================================================
# FIRING TESTS
# ============================================================

class TestFiring:
    """Tests for event delivery."""

    def test_fires_immediately_on_start(self, trigger, received):
        trigger.start()

        assert received == [datetime(2025, 9, 26, 15, 0)]

    def test_fires_every_interval(self, trigger, clock, received):
        trigger.start()
        clock.advance(minutes=12)

        assert received == [
            datetime(2025, 9, 26, 15, 0),
            datetime(2025, 9, 26, 15, 5),
            datetime(2025, 9, 26, 15, 10),
        ]

    def test_silent_after_stop(self, trigger, clock, received):
        trigger.start()
        trigger.stop()
        clock.advance(hours=1)

        assert len(received) == 1

    def test_late_tick_after_stop_ignored(self, trigger, received):
        trigger.start()
        trigger.stop()

        # Tick already dispatched by the timer when stop() ran
        trigger._on_timer_elapsed()

        assert len(received) == 1

    def test_late_tick_after_close_ignored(self, trigger, received):
        trigger.start()
        trigger.close()

        trigger._on_timer_elapsed()

        assert len(received) == 1

    def test_all_subscribers_notified(self, trigger, received):
        second = MagicMock()
        trigger.subscribe(second)

        trigger.start()

        assert len(received) == 1
        second.assert_called_once()
        assert second.call_args.args[0].fired_at == datetime(2025, 9, 26, 15, 0)

    def test_failing_subscriber_does_not_block_others(self, trigger, caplog):
        calls = []
        trigger.subscribe(MagicMock(side_effect=RuntimeError("subscriber failure")))
        trigger.subscribe(lambda event: calls.append(event))

        trigger.start()

        assert len(calls) == 1
        assert "Trigger subscriber raised" in caplog.text

    def test_unsubscribe(self, trigger, clock):
        callback = MagicMock()
        trigger.subscribe(callback)
        trigger.start()

        trigger.unsubscribe(callback)
        clock.advance(minutes=5)

        callback.assert_called_once()
        assert trigger.subscriber_count == 0

    def test_unsubscribe_during_fire_uses_snapshot(self, trigger):
        second = MagicMock()

        def first(event):
            trigger.unsubscribe(second)

        trigger.subscribe(first)
        trigger.subscribe(second)
        trigger.start()

        second.assert_called_once()

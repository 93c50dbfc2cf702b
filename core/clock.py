"""
Core Module - System Clock.

============================================================
RESPONSIBILITY
============================================================
Provides a unified, testable clock and timer abstraction.

- All time-related operations MUST go through an injected clock
- Timers are created by the clock, so tests can drive them
- Enables deterministic testing of the trigger and the reporter

============================================================
DESIGN PRINCIPLES
============================================================
- Local wall time (reports are keyed by local time)
- No global clock lookup in business logic
- Mockable for testing
- Thread-safe

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Generator, List, Optional
import logging
import threading
import time


logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


# ============================================================
# TIMER HANDLE
# ============================================================

class TimerHandle(ABC):
    """A running timer owned by whoever created it."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop future firings and release the timer."""
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        pass


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the service clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current local datetime."""
        pass

    @abstractmethod
    def create_timer(
        self,
        callback: TimerCallback,
        due_seconds: float,
        period_seconds: float,
    ) -> TimerHandle:
        """
        Create a timer that fires after due_seconds, then every period_seconds.

        A due time of zero fires without delay.
        """
        pass


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class IntervalTimer(TimerHandle):
    """
    Periodic timer running on a daemon thread.

    The callback runs on the timer thread. The schedule is anchored to
    the previous firing so a slow callback does not shift later ticks.
    """

    def __init__(
        self,
        callback: TimerCallback,
        due_seconds: float,
        period_seconds: float,
        name: str = "interval-timer",
    ):
        self._callback = callback
        self._due_seconds = max(0.0, due_seconds)
        self._period_seconds = period_seconds
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        if self._stopped.wait(self._due_seconds):
            return

        next_fire = time.monotonic()
        while not self._stopped.is_set():
            try:
                self._callback()
            except Exception:
                logger.error("Timer callback raised", exc_info=True)

            if self._period_seconds <= 0:
                return

            next_fire += self._period_seconds
            remaining = max(0.0, next_fire - time.monotonic())
            if self._stopped.wait(remaining):
                return

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()


class SystemClock(ClockProtocol):
    """
    Production clock using actual system time.

    Returns aware datetimes in the given zone, or in the host's
    local zone when none is given.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self._tz = tz

    def now(self) -> datetime:
        """Get current local datetime."""
        if self._tz is not None:
            return datetime.now(self._tz)
        return datetime.now().astimezone()

    def create_timer(
        self,
        callback: TimerCallback,
        due_seconds: float,
        period_seconds: float,
    ) -> TimerHandle:
        return IntervalTimer(callback, due_seconds, period_seconds)


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class _MockTimer(TimerHandle):
    """Timer driven by MockClock.advance()."""

    def __init__(
        self,
        clock: "MockClock",
        callback: TimerCallback,
        due_at: datetime,
        period: timedelta,
    ):
        self._clock = clock
        self.callback = callback
        self.due_at = due_at
        self.period = period
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._clock._discard(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests. Timers created
    on this clock fire synchronously on the calling thread: at creation
    when due immediately, otherwise from advance().
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Initialize mock clock.

        Args:
            initial_time: Starting time (defaults to current local time)
        """
        self._time = initial_time or datetime.now().astimezone()
        self._lock = threading.Lock()
        self._timers: List[_MockTimer] = []
        self.timers_created = 0

    def now(self) -> datetime:
        """Get current (mocked) datetime."""
        with self._lock:
            return self._time

    def set_time(self, new_time: datetime) -> None:
        """Set the current time without firing timers."""
        with self._lock:
            self._time = new_time

    def create_timer(
        self,
        callback: TimerCallback,
        due_seconds: float,
        period_seconds: float,
    ) -> TimerHandle:
        with self._lock:
            timer = _MockTimer(
                self,
                callback,
                self._time + timedelta(seconds=max(0.0, due_seconds)),
                timedelta(seconds=period_seconds),
            )
            self._timers.append(timer)
            self.timers_created += 1

        if due_seconds <= 0:
            self._fire(timer)
        return timer

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount, firing every timer that
        falls due on the way.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        with self._lock:
            target = self._time + timedelta(seconds=seconds, **kwargs)

        while True:
            with self._lock:
                due = [t for t in self._timers if t.due_at <= target]
                if not due:
                    self._time = target
                    return
                timer = min(due, key=lambda t: t.due_at)
                self._time = timer.due_at
            self._fire(timer)

    @property
    def active_timers(self) -> int:
        """Number of timers not yet cancelled."""
        with self._lock:
            return len(self._timers)

    @contextmanager
    def freeze(self, at_time: Optional[datetime] = None) -> Generator[None, None, None]:
        """
        Context manager to freeze time.

        Args:
            at_time: Time to freeze at (defaults to current)
        """
        with self._lock:
            original_time = self._time
            if at_time:
                self._time = at_time

        try:
            yield
        finally:
            with self._lock:
                self._time = original_time

    def _fire(self, timer: _MockTimer) -> None:
        with self._lock:
            if timer.cancelled:
                return
            if timer.period > timedelta(0):
                timer.due_at += timer.period
            else:
                self._timers.remove(timer)

        timer.callback()

    def _discard(self, timer: _MockTimer) -> None:
        with self._lock:
            if timer in self._timers:
                self._timers.remove(timer)


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "TimerCallback",
    "TimerHandle",
    "ClockProtocol",
    "IntervalTimer",
    "SystemClock",
    "MockClock",
]

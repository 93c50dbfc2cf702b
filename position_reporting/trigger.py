"""
Position Reporting - Periodic Trigger.

============================================================
PURPOSE
============================================================
Fires a TriggerEvent immediately on start, then once per interval,
to every subscriber.

============================================================
STATE MACHINE
============================================================
    IDLE --start--> RUNNING --stop/close--> STOPPED
    IDLE --close--> STOPPED

STOPPED is terminal: a stopped trigger cannot be restarted.

CRITICAL CONSTRAINTS:
- Exactly one timer per running trigger, cancelled exactly once
- No event reaches a subscriber after stop
- One failing subscriber does not starve the others

============================================================
"""

import logging
import threading
from datetime import timedelta
from enum import Enum
from typing import Callable, List, Optional

from core.clock import ClockProtocol, TimerHandle
from core.exceptions import ConfigurationError, TriggerError, require

from .models import TriggerEvent


logger = logging.getLogger(__name__)

TriggerCallback = Callable[[TriggerEvent], None]


class TriggerState(Enum):
    """Lifecycle state of a PeriodicTrigger."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class PeriodicTrigger:
    """
    Recurring trigger driven by a clock-owned timer.

    Subscribers are called synchronously on the timer's thread.
    """

    def __init__(self, clock: ClockProtocol, interval: timedelta):
        self._clock = require(clock, "clock")

        if interval is None or interval <= timedelta(0):
            raise ConfigurationError(
                "Trigger interval must be greater than zero",
                config_key="interval",
                actual_value=interval,
            )

        self._interval = interval
        self._lock = threading.Lock()
        self._state = TriggerState.IDLE
        self._timer: Optional[TimerHandle] = None
        self._subscribers: List[TriggerCallback] = []

    # =========================================================
    # PROPERTIES
    # =========================================================

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def state(self) -> TriggerState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state == TriggerState.RUNNING

    # =========================================================
    # SUBSCRIPTIONS
    # =========================================================

    def subscribe(self, callback: TriggerCallback) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: TriggerCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # =========================================================
    # LIFECYCLE
    # =========================================================

    def start(self) -> None:
        """
        Start firing.

        Raises:
            TriggerError: If the trigger has already been stopped
        """
        with self._lock:
            if self._state == TriggerState.RUNNING:
                logger.warning("Trigger is already running")
                return
            if self._state == TriggerState.STOPPED:
                raise TriggerError("Trigger has been stopped and cannot be restarted")
            self._state = TriggerState.RUNNING

        logger.info(
            f"Starting trigger with interval {self._interval.total_seconds():.0f}s"
        )

        # Outside the lock: a clock may fire a zero-due timer synchronously.
        timer = self._clock.create_timer(
            self._on_timer_elapsed,
            0,
            self._interval.total_seconds(),
        )

        with self._lock:
            if self._state == TriggerState.RUNNING:
                self._timer = timer
                return

        # Stopped while the timer was being created
        timer.cancel()

    def stop(self) -> None:
        """Stop firing. Redundant calls are ignored."""
        with self._lock:
            if self._state != TriggerState.RUNNING:
                logger.warning(f"Trigger is not running (state={self._state.value})")
                return
            self._state = TriggerState.STOPPED
            timer, self._timer = self._timer, None

        if timer is not None:
            timer.cancel()
        logger.info("Trigger stopped")

    def close(self) -> None:
        """Stop if running and release the trigger for good."""
        with self._lock:
            previous = self._state
            self._state = TriggerState.STOPPED
            timer, self._timer = self._timer, None

        if timer is not None:
            timer.cancel()
        if previous == TriggerState.RUNNING:
            logger.info("Trigger stopped")

    def __enter__(self) -> "PeriodicTrigger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================
    # FIRING
    # =========================================================

    def _on_timer_elapsed(self) -> None:
        with self._lock:
            if self._state != TriggerState.RUNNING:
                return
            subscribers = list(self._subscribers)

        event = TriggerEvent(fired_at=self._clock.now())
        logger.debug(f"Trigger fired at {event.fired_at.isoformat()}")

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.error("Trigger subscriber raised", exc_info=True)


__all__ = ["PeriodicTrigger", "TriggerState", "TriggerCallback"]

"""
Position Reporting - Reporter.

============================================================
RESPONSIBILITY
============================================================
Owns the service lifecycle and runs report cycles.

- Produces one report for "now" at startup
- Runs one generate-and-export cycle per trigger tick
- Wraps every cycle in the retry policy
- Contains cycle failures: they are logged, never raised

============================================================
THREADING
============================================================
Trigger subscribers run on the timer's thread. The reporter's
subscriber only hands the tick to the event loop, where each tick
becomes an independent task. Overlapping cycles are allowed.

============================================================
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Set, Tuple

from core.clock import ClockProtocol
from core.constants import REPORT_GENERATION_OPERATION
from core.exceptions import ReportingException, require

from .exporter import CsvReportExporter
from .generator import PositionReportGenerator
from .models import CycleOutcome, PositionReport, TriggerEvent
from .retry import RetryPolicy
from .trigger import PeriodicTrigger


logger = logging.getLogger(__name__)


class PositionReporter:
    """
    Intraday position reporting service.

    Usage:
        reporter = PositionReporter(trigger, generator, exporter, retry_policy, clock)
        await reporter.run_forever()  # until request_stop()
    """

    def __init__(
        self,
        trigger: PeriodicTrigger,
        generator: PositionReportGenerator,
        exporter: CsvReportExporter,
        retry_policy: RetryPolicy,
        clock: ClockProtocol,
    ):
        self._trigger = require(trigger, "trigger")
        self._generator = require(generator, "generator")
        self._exporter = require(exporter, "exporter")
        self._retry_policy = require(retry_policy, "retry_policy")
        self._clock = require(clock, "clock")

        self._running = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event = asyncio.Event()
        self._tasks: Set[asyncio.Task] = set()

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending_cycles(self) -> int:
        """Number of tick cycles still in flight."""
        return len(self._tasks)

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    async def start(self) -> None:
        """Run the startup report, then activate the trigger."""
        if self._running:
            logger.warning("PositionReporter already running")
            return

        logger.info("PositionReporter starting")
        self._loop = asyncio.get_running_loop()

        await self.run_cycle(self._clock.now())

        self._trigger.subscribe(self._on_trigger)
        try:
            self._trigger.start()
        except Exception:
            self._trigger.unsubscribe(self._on_trigger)
            raise

        self._running = True
        logger.info("PositionReporter started, trigger is now active")

    async def stop(self) -> None:
        """Stop the trigger. In-flight cycles are left to finish."""
        if not self._running:
            return

        self._running = False
        self._trigger.stop()
        self._trigger.unsubscribe(self._on_trigger)
        logger.info("PositionReporter stopped")

    async def run_forever(self) -> None:
        """Start, wait for request_stop(), then stop."""
        await self.start()
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    def request_stop(self) -> None:
        """Ask run_forever() to return. Must be called on the event loop."""
        logger.info("Stop requested")
        self._stop_event.set()

    async def wait_for_pending_cycles(self) -> None:
        """Wait until every cycle spawned so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # --------------------------------------------------------
    # Cycles
    # --------------------------------------------------------

    async def run_cycle(self, timestamp: datetime) -> CycleOutcome:
        """
        Generate and export one report under the retry policy.

        Failures are logged once retries are exhausted and reported in
        the returned outcome. Only cancellation propagates.
        """
        try:
            report, path = await self._retry_policy.execute(
                self._generate_and_export,
                timestamp,
                operation_name=REPORT_GENERATION_OPERATION,
            )
        except Exception as e:
            if isinstance(e, ReportingException):
                detail = e.to_log_format()
            else:
                detail = f"{type(e).__name__}: {e}"
            logger.error(
                f"Failed to generate or export report for timestamp {timestamp.isoformat()}: {detail}",
                exc_info=True,
            )
            return CycleOutcome(timestamp=timestamp, success=False, error=str(e))

        logger.info(
            f"Report generated and exported successfully with {report.period_count} "
            f"periods for timestamp {report.timestamp.isoformat()}"
        )
        return CycleOutcome(
            timestamp=timestamp,
            success=True,
            period_count=report.period_count,
            output_path=str(path),
        )

    async def _generate_and_export(self, timestamp: datetime) -> Tuple[PositionReport, Path]:
        report = await self._generator.generate(timestamp)
        path = await self._exporter.export(report)
        return report, path

    def _on_trigger(self, event: TriggerEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning(
                f"Dropping trigger event at {event.fired_at.isoformat()}: event loop not available"
            )
            return
        loop.call_soon_threadsafe(self._spawn_cycle, event.fired_at)

    def _spawn_cycle(self, timestamp: datetime) -> None:
        task = asyncio.ensure_future(self.run_cycle(timestamp))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


__all__ = ["PositionReporter"]

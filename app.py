#!/usr/bin/env python3
"""
Power Position Reporting - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
The one executable entry point of the reporting service.

- Loads configuration (YAML file, or environment / .env)
- Wires trigger, generator, exporter and retry policy
- Handles SIGINT / SIGTERM gracefully
- Writes one CSV report at startup, then one per interval

============================================================
USAGE
============================================================
Direct execution:
    python app.py --interval-minutes 15 --output-dir ./reports

Single report and exit:
    python app.py --interval-minutes 15 --once

Environment-based configuration:
    POSITION_REPORT_INTERVAL_MINUTES=15 python app.py

============================================================
EXIT CODES
============================================================
    0    clean shutdown / report written
    1    report failed (--once) or fatal error
    2    invalid configuration
    130  interrupted

============================================================
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import List, Optional

from core.clock import ClockProtocol, SystemClock
from core.constants import SERVICE_NAME, SERVICE_VERSION
from core.exceptions import ConfigurationError
from position_reporting import (
    CsvReportExporter,
    PeriodicTrigger,
    PositionReporter,
    PositionReportGenerator,
    ReportingConfig,
    RetryPolicy,
)
from trade_sources import BaseTradeSource, HttpTradeSource, SimulatedTradeSource


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> logging.Logger:
    """
    Set up logging for the whole process.

    Args:
        level: Log level
        log_format: Output format (json or text)

    Returns:
        Application logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger(SERVICE_NAME)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME,
        description="Intraday power position reporting service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Command-line options override the YAML file (--config) or,
without one, the environment (a .env file is read first).

Examples:
  %(prog)s --interval-minutes 15 --output-dir ./reports
  %(prog)s --config reporting.yaml --once
  %(prog)s --interval-minutes 5 --source http --base-url http://localhost:8080
        """,
    )

    # --------------------------------------------------------
    # Reporting Options
    # --------------------------------------------------------
    reporting_group = parser.add_argument_group("Reporting Options")

    reporting_group.add_argument(
        "--interval-minutes",
        type=float,
        metavar="MINUTES",
        help="Minutes between reports (required unless configured elsewhere)",
    )

    reporting_group.add_argument(
        "--output-dir",
        type=str,
        metavar="PATH",
        help="Directory receiving CSV reports (default: current directory)",
    )

    reporting_group.add_argument(
        "--once",
        action="store_true",
        help="Write a single report for now and exit",
    )

    # --------------------------------------------------------
    # Trade Source Options
    # --------------------------------------------------------
    source_group = parser.add_argument_group("Trade Source Options")

    source_group.add_argument(
        "--source",
        type=str,
        choices=["simulated", "http"],
        help="Trade source (default: simulated)",
    )

    source_group.add_argument(
        "--base-url",
        type=str,
        metavar="URL",
        help="Base URL of the trade API (http source)",
    )

    source_group.add_argument(
        "--failure-rate",
        type=float,
        metavar="RATE",
        help="Probability of a simulated fetch failure, 0..1 (simulated source)",
    )

    source_group.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible simulated trades",
    )

    # --------------------------------------------------------
    # System Options
    # --------------------------------------------------------
    system_group = parser.add_argument_group("System Options")

    system_group.add_argument(
        "--config", "-c",
        type=str,
        metavar="PATH",
        help="YAML configuration file",
    )

    system_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    system_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Logging format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {SERVICE_VERSION}",
    )

    return parser


def build_config(args: argparse.Namespace) -> ReportingConfig:
    """
    Build configuration from the file or environment plus CLI overrides.

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    config = ReportingConfig.from_yaml(args.config) if args.config else ReportingConfig.from_env()

    if args.interval_minutes is not None:
        config.trigger.interval_minutes = args.interval_minutes
    if args.output_dir is not None:
        config.exporter.output_directory = args.output_dir
    if args.source is not None:
        config.trade_source.kind = args.source
    if args.base_url is not None:
        config.trade_source.base_url = args.base_url
    if args.failure_rate is not None:
        config.trade_source.failure_rate = args.failure_rate
    if args.seed is not None:
        config.trade_source.seed = args.seed
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    config.ensure_valid()
    return config


# ============================================================
# COMPONENT WIRING
# ============================================================

def build_trade_source(config: ReportingConfig) -> BaseTradeSource:
    """Create the configured trade source."""
    source_config = config.trade_source

    if source_config.kind == "http":
        return HttpTradeSource(
            base_url=source_config.base_url,
            timeout=source_config.timeout_seconds,
        )

    return SimulatedTradeSource(
        failure_rate=source_config.failure_rate,
        seed=source_config.seed,
        market_timezone=config.market_zone,
    )


def build_reporter(
    config: ReportingConfig,
    trade_source: BaseTradeSource,
    clock: Optional[ClockProtocol] = None,
) -> PositionReporter:
    """
    Wire every component of the service.

    Args:
        config: Validated configuration
        trade_source: Source of trades
        clock: Clock (defaults to the system clock in local time)
    """
    clock = clock or SystemClock()

    return PositionReporter(
        trigger=PeriodicTrigger(clock, config.trigger.interval),
        generator=PositionReportGenerator(
            trade_source,
            market_timezone=config.market_zone,
        ),
        exporter=CsvReportExporter(config.exporter),
        retry_policy=RetryPolicy(config.retry),
        clock=clock,
    )


# ============================================================
# SIGNAL HANDLERS
# ============================================================

def install_signal_handlers(reporter: PositionReporter) -> List[signal.Signals]:
    """Route SIGINT / SIGTERM to reporter.request_stop()."""
    loop = asyncio.get_running_loop()
    logger = logging.getLogger(__name__)

    if sys.platform == "win32":
        def _handler(signum, frame):
            logger.info(f"Received signal {signum}")
            loop.call_soon_threadsafe(reporter.request_stop)

        signal.signal(signal.SIGINT, _handler)
        return []

    installed = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, reporter.request_stop)
        installed.append(sig)
    return installed


def restore_signal_handlers(installed: List[signal.Signals]) -> None:
    """Remove handlers added by install_signal_handlers()."""
    loop = asyncio.get_running_loop()
    for sig in installed:
        loop.remove_signal_handler(sig)


# ============================================================
# APPLICATION
# ============================================================

async def run_application(config: ReportingConfig, once: bool = False) -> int:
    """
    Run the reporting service.

    Args:
        config: Validated configuration
        once: Write one report and exit instead of running forever

    Returns:
        Exit code
    """
    logger = logging.getLogger(__name__)

    async with build_trade_source(config) as trade_source:
        clock = SystemClock()
        reporter = build_reporter(config, trade_source, clock)

        if once:
            logger.info("Running single report cycle...")
            outcome = await reporter.run_cycle(clock.now())
            if outcome.success:
                print(f"Report written: {outcome.output_path}")
                return EXIT_OK
            print(f"Report failed: {outcome.error}", file=sys.stderr)
            return EXIT_FAILURE

        installed = install_signal_handlers(reporter)
        try:
            logger.info(
                f"Reporting every {config.trigger.interval_minutes} minutes "
                f"to {config.exporter.output_directory} (press Ctrl+C to stop)..."
            )
            await reporter.run_forever()
            return EXIT_OK
        finally:
            restore_signal_handlers(installed)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(config.log_level, config.log_format)
    logger = logging.getLogger(__name__)
    logger.info(f"{SERVICE_NAME} {SERVICE_VERSION} starting with {config.trade_source.kind} trade source")

    try:
        return asyncio.run(run_application(config, once=args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return EXIT_FAILURE


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())

"""
Position Reporting Package.

============================================================
PURPOSE
============================================================
Periodic intraday power position reports.

Each trigger tick produces one CSV file holding the aggregated
volume per hour of the current power trading day.

============================================================
COMPONENTS
============================================================
- PeriodicTrigger: fires immediately, then once per interval
- PositionReportGenerator: trades -> PositionReport
- CsvReportExporter: PositionReport -> CSV file
- RetryPolicy: bounded exponential backoff
- PositionReporter: lifecycle and cycles

============================================================
"""

from .config import (
    ExporterConfig,
    ReportingConfig,
    RetryConfig,
    TradeSourceConfig,
    TriggerConfig,
)
from .exporter import CsvReportExporter
from .generator import PositionReportGenerator
from .mapper import PeriodMapper, map_period_to_hour
from .models import (
    CycleOutcome,
    PositionReport,
    PowerTrade,
    ReportPeriod,
    TradingPeriod,
    TriggerEvent,
    compare_periods,
    trading_day_order,
)
from .reporter import PositionReporter
from .retry import RetryPolicy
from .trigger import PeriodicTrigger, TriggerState


__all__ = [
    # Config
    "TriggerConfig",
    "ExporterConfig",
    "RetryConfig",
    "TradeSourceConfig",
    "ReportingConfig",
    # Models
    "TradingPeriod",
    "PowerTrade",
    "ReportPeriod",
    "PositionReport",
    "TriggerEvent",
    "CycleOutcome",
    "compare_periods",
    "trading_day_order",
    # Components
    "PeriodMapper",
    "map_period_to_hour",
    "PositionReportGenerator",
    "CsvReportExporter",
    "RetryPolicy",
    "PeriodicTrigger",
    "TriggerState",
    "PositionReporter",
]

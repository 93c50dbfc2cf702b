"""
Core Module Package.

This package contains the infrastructure components
that the reporting service depends on.

Components:
- clock: Clock and timer abstraction
- exceptions: Custom exception hierarchy
- constants: Service-wide constants
"""

from .clock import ClockProtocol, MockClock, SystemClock, TimerHandle
from .exceptions import (
    ConfigurationError,
    DataValidationError,
    DuplicatePeriodError,
    ExportError,
    ReportingException,
    TradeSourceError,
    TriggerError,
)

__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "TimerHandle",
    "ConfigurationError",
    "DataValidationError",
    "DuplicatePeriodError",
    "ExportError",
    "ReportingException",
    "TradeSourceError",
    "TriggerError",
]

"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the position reporting service.

- Provides clear exception hierarchy
- Severity separates start-up failures from single-cycle failures
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
ReportingException (base)
├── ConfigurationError          (also a ValueError)
│   ├── MissingConfigError
│   └── InvalidConfigError
├── DataError
│   └── DataValidationError     (also a ValueError)
│       └── DuplicatePeriodError
├── TradeSourceError
├── ExportError
└── TriggerError

Every ReportingException is retried by the report cycle's retry
policy. Only the configuration errors stop the service, at start-up.

============================================================
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels."""

    LOW = "low"
    """Minor issue, informational."""

    MEDIUM = "medium"
    """Moderate issue, a single cycle is affected."""

    HIGH = "high"
    """Serious issue, the service cannot start."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class ReportingException(Exception):
    """
    Base exception for all position reporting errors.

    All exceptions carry:
    - severity: for log routing
    - context: for debugging
    """

    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.cause = cause

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        line = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        if ctx_str:
            line += f" | {ctx_str}"
        return line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(ReportingException, ValueError):
    """Error in configuration or in required construction arguments."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]

        super().__init__(message, context=context, **kwargs)
        self.config_key = config_key


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    def __init__(self, key: str, source: str = "config"):
        super().__init__(
            message=f"Missing required configuration: {key}",
            config_key=key,
            context={"source": source},
        )


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for {key}: {reason}",
            config_key=key,
            actual_value=value,
            context={"reason": reason},
        )


def require(value: Any, name: str) -> Any:
    """Reject an absent collaborator eagerly."""
    if value is None:
        raise ConfigurationError(f"{name} is required", config_key=name)
    return value


# ============================================================
# DATA ERRORS
# ============================================================

class DataError(ReportingException):
    """Base class for data-related errors."""


class DataValidationError(DataError, ValueError):
    """Data failed validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        actual: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if field:
            context["field"] = field
        if actual is not None:
            context["actual"] = str(actual)[:100]

        super().__init__(message, context=context, **kwargs)


class DuplicatePeriodError(DataValidationError):
    """A report was built with more than one period for the same hour."""

    def __init__(self, duplicate_hours: Sequence[int]):
        self.duplicate_hours: List[int] = list(duplicate_hours)
        formatted = ", ".join(f"{hour:02d}:00" for hour in self.duplicate_hours)
        super().__init__(
            f"Duplicate periods found: {formatted}",
            field="periods",
            context={"duplicate_hours": self.duplicate_hours},
        )


# ============================================================
# COLLABORATOR ERRORS
# ============================================================

class TradeSourceError(ReportingException):
    """Trades could not be fetched from the trade source."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        status_code: Optional[int] = None,
        request_url: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if source_name:
            context["source"] = source_name
        if status_code is not None:
            context["status_code"] = status_code
        if request_url:
            context["request_url"] = request_url

        super().__init__(message, context=context, **kwargs)
        self.source_name = source_name
        self.status_code = status_code


class ExportError(ReportingException):
    """A report could not be written to its destination."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(message, context=context, **kwargs)
        self.path = path


class TriggerError(ReportingException):
    """Trigger used outside its lifecycle."""


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "Severity",
    "ReportingException",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "require",
    "DataError",
    "DataValidationError",
    "DuplicatePeriodError",
    "TradeSourceError",
    "ExportError",
    "TriggerError",
]

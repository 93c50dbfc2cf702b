"""
Position Reporting - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the position reporting service.

Configuration can be loaded from:
- Environment variables (a .env file is read first)
- YAML config file

CRITICAL CONSTRAINTS:
- The trigger interval is required, there is no default
- Invalid configuration fails fast at startup

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY_SECONDS,
    DEFAULT_OUTPUT_DIRECTORY,
    DEFAULT_RETRY_DELAY_SECONDS,
    MARKET_TIMEZONE,
)
from core.exceptions import ConfigurationError, InvalidConfigError, MissingConfigError


logger = logging.getLogger(__name__)


# ============================================================
# TRIGGER CONFIGURATION
# ============================================================

@dataclass
class TriggerConfig:
    """
    Periodic trigger configuration.

    No default interval: it must be configured explicitly.
    """

    interval_minutes: Optional[float] = None
    """Minutes between report triggers. Must be greater than zero."""

    @property
    def interval(self) -> timedelta:
        if self.interval_minutes is None:
            raise MissingConfigError("trigger.interval_minutes", source="trigger")
        return timedelta(minutes=self.interval_minutes)

    def validate(self) -> List[str]:
        errors = []
        if self.interval_minutes is None:
            errors.append("trigger.interval_minutes is required")
        elif self.interval_minutes <= 0:
            errors.append("trigger.interval_minutes must be greater than zero")
        return errors


# ============================================================
# EXPORTER CONFIGURATION
# ============================================================

@dataclass
class ExporterConfig:
    """CSV exporter configuration."""

    output_directory: str = DEFAULT_OUTPUT_DIRECTORY
    """Directory receiving report files. Created when missing."""

    def validate(self) -> List[str]:
        if not self.output_directory:
            return ["exporter.output_directory must not be empty"]
        return []


# ============================================================
# RETRY CONFIGURATION
# ============================================================

@dataclass
class RetryConfig:
    """
    Retry configuration for report cycles.

    SAFETY: Limited retries with exponential backoff.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    """Retries after the first attempt."""

    initial_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    """Delay before the first retry."""

    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    """Exponential backoff multiplier."""

    max_delay_seconds: float = DEFAULT_MAX_RETRY_DELAY_SECONDS
    """Upper bound for a single delay."""

    def validate(self) -> List[str]:
        errors = []
        if self.max_retries < 0:
            errors.append("retry.max_retries must not be negative")
        if self.initial_delay_seconds < 0:
            errors.append("retry.initial_delay_seconds must not be negative")
        if self.backoff_multiplier < 1:
            errors.append("retry.backoff_multiplier must be at least 1")
        if self.max_delay_seconds < self.initial_delay_seconds:
            errors.append("retry.max_delay_seconds must be >= initial_delay_seconds")
        return errors


# ============================================================
# TRADE SOURCE CONFIGURATION
# ============================================================

@dataclass
class TradeSourceConfig:
    """Which trade source to use and how to reach it."""

    kind: str = "simulated"
    """simulated or http."""

    base_url: Optional[str] = None
    """Base URL of the trade API (http only)."""

    timeout_seconds: float = 30.0
    """Request timeout (http only)."""

    failure_rate: float = 0.0
    """Probability of a simulated fetch failure (simulated only)."""

    seed: Optional[int] = None
    """Random seed for reproducible simulated trades."""

    def validate(self) -> List[str]:
        errors = []
        if self.kind not in ("simulated", "http"):
            errors.append(f"trade_source.kind must be 'simulated' or 'http', got '{self.kind}'")
        if self.kind == "http" and not self.base_url:
            errors.append("trade_source.base_url is required for the http source")
        if self.timeout_seconds <= 0:
            errors.append("trade_source.timeout_seconds must be greater than zero")
        if not 0.0 <= self.failure_rate <= 1.0:
            errors.append("trade_source.failure_rate must be between 0 and 1")
        return errors


# ============================================================
# SERVICE CONFIGURATION
# ============================================================

@dataclass
class ReportingConfig:
    """Complete configuration of the reporting service."""

    trigger: TriggerConfig = field(default_factory=TriggerConfig)
    exporter: ExporterConfig = field(default_factory=ExporterConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    trade_source: TradeSourceConfig = field(default_factory=TradeSourceConfig)

    market_timezone: str = MARKET_TIMEZONE
    """Zone in which trade dates are requested."""

    log_level: str = "INFO"
    log_format: str = "text"
    """text or json."""

    @property
    def market_zone(self) -> ZoneInfo:
        return ZoneInfo(self.market_timezone)

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "ReportingConfig":
        """Load configuration from environment variables."""
        load_dotenv(env_file)

        config = cls()

        config.trigger.interval_minutes = _env_float("POSITION_REPORT_INTERVAL_MINUTES")

        if os.getenv("POSITION_REPORT_OUTPUT_DIR"):
            config.exporter.output_directory = os.getenv("POSITION_REPORT_OUTPUT_DIR")

        if os.getenv("POSITION_REPORT_RETRY_MAX"):
            config.retry.max_retries = _env_int("POSITION_REPORT_RETRY_MAX")
        if os.getenv("POSITION_REPORT_RETRY_DELAY_SECONDS"):
            config.retry.initial_delay_seconds = _env_float("POSITION_REPORT_RETRY_DELAY_SECONDS")
        if os.getenv("POSITION_REPORT_RETRY_BACKOFF"):
            config.retry.backoff_multiplier = _env_float("POSITION_REPORT_RETRY_BACKOFF")
        if os.getenv("POSITION_REPORT_RETRY_MAX_DELAY_SECONDS"):
            config.retry.max_delay_seconds = _env_float("POSITION_REPORT_RETRY_MAX_DELAY_SECONDS")

        config.trade_source.kind = os.getenv("TRADE_SOURCE", config.trade_source.kind)
        config.trade_source.base_url = os.getenv("TRADE_SOURCE_URL")
        if os.getenv("TRADE_SOURCE_TIMEOUT_SECONDS"):
            config.trade_source.timeout_seconds = _env_float("TRADE_SOURCE_TIMEOUT_SECONDS")
        if os.getenv("TRADE_SOURCE_FAILURE_RATE"):
            config.trade_source.failure_rate = _env_float("TRADE_SOURCE_FAILURE_RATE")
        if os.getenv("TRADE_SOURCE_SEED"):
            config.trade_source.seed = _env_int("TRADE_SOURCE_SEED")

        config.market_timezone = os.getenv("MARKET_TIMEZONE", config.market_timezone)
        config.log_level = os.getenv("LOG_LEVEL", config.log_level)
        config.log_format = os.getenv("LOG_FORMAT", config.log_format)

        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ReportingConfig":
        """Load configuration from YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load YAML config from {path}: {e}",
                config_key="config_file",
                cause=e,
            ) from e

        if not isinstance(data, dict):
            raise InvalidConfigError("config_file", path, "top level must be a mapping")

        config = cls()

        if "trigger" in data:
            t = _yaml_section(data, "trigger")
            config.trigger = TriggerConfig(
                interval_minutes=_yaml_float(t, "trigger.interval_minutes", None),
            )

        if "exporter" in data:
            e = _yaml_section(data, "exporter")
            config.exporter = ExporterConfig(
                output_directory=str(e.get("output_directory", DEFAULT_OUTPUT_DIRECTORY)),
            )

        if "retry" in data:
            r = _yaml_section(data, "retry")
            config.retry = RetryConfig(
                max_retries=_yaml_int(r, "retry.max_retries", DEFAULT_MAX_RETRIES),
                initial_delay_seconds=_yaml_float(
                    r, "retry.initial_delay_seconds", DEFAULT_RETRY_DELAY_SECONDS
                ),
                backoff_multiplier=_yaml_float(
                    r, "retry.backoff_multiplier", DEFAULT_BACKOFF_MULTIPLIER
                ),
                max_delay_seconds=_yaml_float(
                    r, "retry.max_delay_seconds", DEFAULT_MAX_RETRY_DELAY_SECONDS
                ),
            )

        if "trade_source" in data:
            s = _yaml_section(data, "trade_source")
            config.trade_source = TradeSourceConfig(
                kind=s.get("kind", "simulated"),
                base_url=s.get("base_url"),
                timeout_seconds=_yaml_float(s, "trade_source.timeout_seconds", 30.0),
                failure_rate=_yaml_float(s, "trade_source.failure_rate", 0.0),
                seed=_yaml_int(s, "trade_source.seed", None),
            )

        if "logging" in data:
            log = _yaml_section(data, "logging")
            config.log_level = log.get("level", config.log_level)
            config.log_format = log.get("format", config.log_format)

        config.market_timezone = data.get("market_timezone", config.market_timezone)

        return config

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "ReportingConfig":
        """Load from YAML when a path is given, else from the environment, and validate."""
        config = cls.from_yaml(path) if path else cls.from_env()
        config.ensure_valid()
        return config

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        errors.extend(self.trigger.validate())
        errors.extend(self.exporter.validate())
        errors.extend(self.retry.validate())
        errors.extend(self.trade_source.validate())

        try:
            ZoneInfo(self.market_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"market_timezone '{self.market_timezone}' is not a known time zone")

        if self.log_format not in ("text", "json"):
            errors.append("log_format must be 'text' or 'json'")

        return errors

    def ensure_valid(self) -> None:
        """Raise ConfigurationError listing every validation error."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(
                message=f"Invalid configuration: {', '.join(errors)}",
                context={"errors": errors},
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "trigger": {"interval_minutes": self.trigger.interval_minutes},
            "exporter": {"output_directory": self.exporter.output_directory},
            "retry": {
                "max_retries": self.retry.max_retries,
                "initial_delay_seconds": self.retry.initial_delay_seconds,
                "backoff_multiplier": self.retry.backoff_multiplier,
                "max_delay_seconds": self.retry.max_delay_seconds,
            },
            "trade_source": {
                "kind": self.trade_source.kind,
                "base_url": self.trade_source.base_url,
                "timeout_seconds": self.trade_source.timeout_seconds,
                "failure_rate": self.trade_source.failure_rate,
                "seed": self.trade_source.seed,
            },
            "market_timezone": self.market_timezone,
            "logging": {"level": self.log_level, "format": self.log_format},
        }


# ============================================================
# ENV HELPERS
# ============================================================

def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise InvalidConfigError(name, raw, "expected a number") from e


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidConfigError(name, raw, "expected an integer") from e


# ============================================================
# YAML HELPERS
# ============================================================

def _yaml_section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = data[key]
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise InvalidConfigError(key, section, "expected a mapping")
    return section


def _yaml_float(section: Dict[str, Any], key: str, default: Optional[float]) -> Optional[float]:
    raw = section.get(key.rsplit(".", 1)[-1])
    if raw is None:
        return default
    if isinstance(raw, bool):
        raise InvalidConfigError(key, raw, "expected a number")
    try:
        return float(raw)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(key, raw, "expected a number") from e


def _yaml_int(section: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    raw = section.get(key.rsplit(".", 1)[-1])
    if raw is None:
        return default
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise InvalidConfigError(key, raw, "expected an integer")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(key, raw, "expected an integer") from e


__all__ = [
    "TriggerConfig",
    "ExporterConfig",
    "RetryConfig",
    "TradeSourceConfig",
    "ReportingConfig",
]

"""
Position Reporting - Models.

============================================================
PURPOSE
============================================================
Value types flowing through one report cycle.

- TradingPeriod / PowerTrade: raw data from the trade source
- ReportPeriod: one hourly row of a report
- PositionReport: validated, ordered snapshot of a cycle
- TriggerEvent: payload of one trigger tick

============================================================
POWER TRADING DAY ORDER
============================================================
The trading day starts at 23:00 on the previous calendar day:
    23:00, 00:00, 01:00, ..., 22:00

============================================================
"""

import functools
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from core.constants import HOURS_PER_DAY, TRADING_DAY_START_HOUR
from core.exceptions import DataValidationError, DuplicatePeriodError


# ============================================================
# RAW TRADE DATA
# ============================================================

@dataclass(frozen=True)
class TradingPeriod:
    """One raw period of a trade, 1-based in feed order."""
    period: int
    volume: float


@dataclass(frozen=True)
class PowerTrade:
    """A trade as returned by a trade source."""
    date: datetime
    periods: Tuple[TradingPeriod, ...]
    trade_id: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PowerTrade":
        """Create from a JSON-decoded dictionary."""
        return cls(
            date=datetime.fromisoformat(data["date"]),
            periods=tuple(
                TradingPeriod(period=int(p["period"]), volume=float(p["volume"]))
                for p in data["periods"]
            ),
            trade_id=str(data.get("id", "")),
        )


# ============================================================
# REPORT PERIOD
# ============================================================

def trading_day_order(hour: int) -> int:
    """Position of an hour within the power trading day (23:00 is first)."""
    return 0 if hour == TRADING_DAY_START_HOUR else hour + 1


@functools.total_ordering
class ReportPeriod:
    """
    One hourly row of a position report.

    Equality, hashing and ordering use the hour only; volume is ignored.
    """

    __slots__ = ("_hour", "_volume")

    def __init__(self, hour: int, volume: float):
        if not 0 <= hour < HOURS_PER_DAY:
            raise DataValidationError(
                f"Hour must be between 0 and {HOURS_PER_DAY - 1}",
                field="hour",
                actual=hour,
            )
        if not math.isfinite(volume):
            raise DataValidationError(
                "Volume must be a finite number",
                field="volume",
                actual=volume,
            )
        self._hour = hour
        self._volume = volume

    @property
    def hour(self) -> int:
        return self._hour

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def label(self) -> str:
        """Local time label, e.g. '23:00'."""
        return f"{self._hour:02d}:00"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReportPeriod):
            return NotImplemented
        return self._hour == other._hour

    def __lt__(self, other: "ReportPeriod") -> bool:
        if not isinstance(other, ReportPeriod):
            return NotImplemented
        return trading_day_order(self._hour) < trading_day_order(other._hour)

    def __hash__(self) -> int:
        return hash(self._hour)

    def __repr__(self) -> str:
        return f"ReportPeriod({self.label}, {self._volume:.2f})"


def compare_periods(a: Optional[ReportPeriod], b: Optional[ReportPeriod]) -> int:
    """
    Three-way comparison in power trading day order.

    A present period ranks above an absent one.
    """
    if a is None and b is None:
        return 0
    if b is None:
        return 1
    if a is None:
        return -1

    left = trading_day_order(a.hour)
    right = trading_day_order(b.hour)
    return (left > right) - (left < right)


# ============================================================
# POSITION REPORT
# ============================================================

class PositionReport:
    """
    Aggregated volumes per hour for one extract time.

    Construction rejects duplicate hours and stores the periods in
    power trading day order regardless of input order.
    """

    __slots__ = ("_timestamp", "_periods")

    def __init__(self, timestamp: datetime, periods: Optional[Iterable[ReportPeriod]]):
        if periods is None:
            raise DataValidationError("periods must not be None", field="periods")

        period_list = list(periods)

        # dict preserves first-occurrence order of each hour
        counts: Dict[int, int] = {}
        for period in period_list:
            counts[period.hour] = counts.get(period.hour, 0) + 1

        duplicates = [hour for hour, count in counts.items() if count > 1]
        if duplicates:
            raise DuplicatePeriodError(duplicates)

        self._timestamp = timestamp
        self._periods: Tuple[ReportPeriod, ...] = tuple(
            sorted(period_list, key=lambda p: trading_day_order(p.hour))
        )

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    @property
    def periods(self) -> Tuple[ReportPeriod, ...]:
        return self._periods

    @property
    def period_count(self) -> int:
        return len(self._periods)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "timestamp": self._timestamp.isoformat(),
            "periods": [
                {"hour": p.hour, "volume": p.volume} for p in self._periods
            ],
        }

    def __repr__(self) -> str:
        return (
            f"PositionReport(timestamp={self._timestamp.isoformat()}, "
            f"periods={len(self._periods)})"
        )


# ============================================================
# TRIGGER EVENT
# ============================================================

@dataclass(frozen=True)
class TriggerEvent:
    """Payload of one trigger tick."""
    fired_at: datetime


@dataclass
class CycleOutcome:
    """Result of one generate-and-export cycle, as seen by the reporter."""
    timestamp: datetime
    success: bool
    period_count: int = 0
    output_path: Optional[str] = None
    error: Optional[str] = None


__all__ = [
    "TradingPeriod",
    "PowerTrade",
    "ReportPeriod",
    "PositionReport",
    "TriggerEvent",
    "CycleOutcome",
    "trading_day_order",
    "compare_periods",
]

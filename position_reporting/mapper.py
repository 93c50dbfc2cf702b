"""
Position Reporting - Period Mapper.

Maps a raw, 1-based trading period onto the calendar hour it covers.

    Period 1  -> 23:00 (previous calendar day)
    Period 2  -> 00:00
    Period 3  -> 01:00
    ...
    Period 24 -> 22:00

Indices above 24 (clock-change days) are passed through unchecked;
ReportPeriod rejects hours outside 0..23.
"""

from .models import ReportPeriod, TradingPeriod


def map_period_to_hour(period: int) -> int:
    """Return the calendar hour of a raw period index."""
    return 23 if period == 1 else period - 2


class PeriodMapper:
    """Maps raw trading periods to report periods."""

    def map(self, source: TradingPeriod) -> ReportPeriod:
        return ReportPeriod(map_period_to_hour(source.period), source.volume)


__all__ = ["PeriodMapper", "map_period_to_hour"]

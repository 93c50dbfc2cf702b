"""
Position Reporting - Report Generator.

============================================================
PURPOSE
============================================================
Turns the trades of one trading day into a PositionReport.

FLOW:
1. Resolve the trading date for the extract time
2. Fetch trades from the trade source
3. Sum volumes per raw period across all trades
4. Map each period onto its calendar hour
5. Build the (validated, ordered) report

A trading day starts at 23:00, so an extract at or after 23:00
belongs to the next calendar day.

============================================================
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, tzinfo
from typing import TYPE_CHECKING, Dict, Iterable, Optional
from zoneinfo import ZoneInfo

from core.constants import MARKET_TIMEZONE, TRADING_DAY_START_HOUR
from core.exceptions import require

from .mapper import PeriodMapper
from .models import PositionReport, PowerTrade, TradingPeriod

if TYPE_CHECKING:
    from trade_sources.base import BaseTradeSource


logger = logging.getLogger(__name__)


class PositionReportGenerator:
    """
    Generates position reports from a trade source.

    Stateless between calls; safe to use from concurrent cycles.
    """

    def __init__(
        self,
        trade_source: "BaseTradeSource",
        mapper: Optional[PeriodMapper] = None,
        market_timezone: Optional[tzinfo] = None,
    ):
        self._trade_source = require(trade_source, "trade_source")
        self._mapper = mapper or PeriodMapper()
        self._market_timezone = market_timezone or ZoneInfo(MARKET_TIMEZONE)

    @property
    def market_timezone(self) -> tzinfo:
        return self._market_timezone

    def resolve_trading_date(self, extract_time: datetime) -> datetime:
        """Trading date requested from the trade source for an extract time."""
        if extract_time.hour < TRADING_DAY_START_HOUR:
            trading_date = extract_time
        else:
            trading_date = extract_time + timedelta(days=1)
        return trading_date.astimezone(self._market_timezone)

    @staticmethod
    def aggregate_by_period(trades: Iterable[PowerTrade]) -> Dict[int, float]:
        """Total volume per raw period index, in first-seen order."""
        totals: Dict[int, float] = OrderedDict()
        for trade in trades:
            for period in trade.periods:
                totals[period.period] = totals.get(period.period, 0.0) + period.volume
        return totals

    async def generate(self, extract_time: datetime) -> PositionReport:
        """
        Generate the report for an extract time.

        Raises:
            Whatever the trade source or report validation raised,
            after logging it.
        """
        try:
            trading_date = self.resolve_trading_date(extract_time)
            logger.debug(
                f"Fetching trades for trading date {trading_date.date()} "
                f"(extract time {extract_time.isoformat()})"
            )

            trades = await self._trade_source.get_trades(trading_date)
            totals = self.aggregate_by_period(trades)

            periods = [
                self._mapper.map(TradingPeriod(period=period, volume=volume))
                for period, volume in totals.items()
            ]
            report = PositionReport(extract_time, periods)

        except Exception as e:
            logger.error(
                f"Error generating report for extract time {extract_time.isoformat()}: {e}"
            )
            raise

        logger.debug(
            f"Generated report with {report.period_count} periods from {len(trades)} trades"
        )
        return report


__all__ = ["PositionReportGenerator"]

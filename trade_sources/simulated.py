"""
Simulated Trade Source.

============================================================
PURPOSE
============================================================
Stand-in for a real trading system, for local runs and tests.

FEATURES:
- One period per hour of the trading day (23, 24 or 25 on
  clock-change days)
- Reproducible output with a seed
- Configurable latency
- Configurable error injection

============================================================
"""

import asyncio
import logging
import random
import uuid
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Awaitable, Callable, List, Optional
from zoneinfo import ZoneInfo

from core.constants import HOURS_PER_DAY, MARKET_TIMEZONE, TRADING_DAY_START_HOUR
from core.exceptions import TradeSourceError
from position_reporting.models import PowerTrade, TradingPeriod

from .base import BaseTradeSource


logger = logging.getLogger(__name__)


def periods_in_trading_day(trading_date: date, zone: tzinfo) -> int:
    """
    Number of hourly periods in the trading day ending on trading_date.

    The day runs from 23:00 on the previous calendar day to 23:00 on
    trading_date, in the market zone.
    """
    start = datetime.combine(
        trading_date - timedelta(days=1), time(TRADING_DAY_START_HOUR), tzinfo=zone
    )
    end = datetime.combine(trading_date, time(TRADING_DAY_START_HOUR), tzinfo=zone)
    elapsed = end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    return int(elapsed / timedelta(hours=1))


class SimulatedTradeSource(BaseTradeSource):
    """
    Generates random trades for any trading date.

    Simulates a trading system including:
    - A random number of trades per day
    - Random volumes per period
    - Latency
    - Failure injection

    On the autumn clock-change day the trading day has 25 periods.
    Period 25 maps to hour 23 like period 1, so reports built from
    that day are rejected as duplicate periods. A warning is logged
    when such a day is generated.
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        seed: Optional[int] = None,
        min_trades: int = 1,
        max_trades: int = 10,
        max_volume: float = 500.0,
        min_latency_ms: float = 0.0,
        max_latency_ms: float = 0.0,
        market_timezone: Optional[tzinfo] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize simulated source.

        Args:
            failure_rate: Probability of a fetch failure (0.0 to 1.0)
            seed: Random seed for reproducible trades
            min_trades: Minimum trades per day
            max_trades: Maximum trades per day
            max_volume: Largest absolute volume of one period
            min_latency_ms: Minimum simulated latency
            max_latency_ms: Maximum simulated latency
            market_timezone: Zone used to size the trading day
            sleep: Awaitable used to simulate latency
        """
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        if min_trades < 0 or max_trades < min_trades:
            raise ValueError("trade count bounds are invalid")

        self._failure_rate = failure_rate
        self._rng = random.Random(seed)
        self._min_trades = min_trades
        self._max_trades = max_trades
        self._max_volume = max_volume
        self._min_latency_ms = min_latency_ms
        self._max_latency_ms = max_latency_ms
        self._zone = market_timezone or ZoneInfo(MARKET_TIMEZONE)
        self._sleep = sleep
        self.calls = 0

    @property
    def name(self) -> str:
        return "simulated"

    async def get_trades(self, trade_date: datetime) -> List[PowerTrade]:
        self.calls += 1

        if self._max_latency_ms > 0:
            latency_ms = self._rng.uniform(self._min_latency_ms, self._max_latency_ms)
            await self._sleep(latency_ms / 1000)

        if self._failure_rate and self._rng.random() < self._failure_rate:
            raise TradeSourceError(
                "Simulated trade source failure",
                source_name=self.name,
                context={"trade_date": trade_date.isoformat()},
            )

        period_count = periods_in_trading_day(trade_date.date(), self._zone)
        if period_count > HOURS_PER_DAY:
            logger.warning(
                f"[{self.name}] {trade_date.date().isoformat()} has {period_count} periods: "
                f"period {period_count} maps to the same hour as period 1, "
                f"reports for this day will fail as duplicate periods"
            )
        trade_count = self._rng.randint(self._min_trades, self._max_trades)

        trades = [
            PowerTrade(
                date=trade_date,
                periods=tuple(
                    TradingPeriod(
                        period=index,
                        volume=round(self._rng.uniform(-self._max_volume, self._max_volume), 2),
                    )
                    for index in range(1, period_count + 1)
                ),
                trade_id=str(uuid.UUID(int=self._rng.getrandbits(128))),
            )
            for _ in range(trade_count)
        ]

        logger.debug(
            f"[{self.name}] Generated {trade_count} trades with {period_count} periods "
            f"for {trade_date.date().isoformat()}"
        )
        return trades


__all__ = ["SimulatedTradeSource", "periods_in_trading_day"]

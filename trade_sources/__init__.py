"""
Trade Sources Package - Pluggable providers of power trades.

Quick Start:
    from trade_sources import SimulatedTradeSource

    async def fetch(trade_date):
        async with SimulatedTradeSource(seed=42) as source:
            return await source.get_trades(trade_date)

Adding New Providers:
    1. Create class extending BaseTradeSource
    2. Implement: name, get_trades()
    3. Pass it to PositionReportGenerator
"""

from trade_sources.base import BaseTradeSource
from trade_sources.http import HttpTradeSource
from trade_sources.simulated import SimulatedTradeSource, periods_in_trading_day


__all__ = [
    "BaseTradeSource",
    "HttpTradeSource",
    "SimulatedTradeSource",
    "periods_in_trading_day",
]

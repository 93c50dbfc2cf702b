"""
Base Trade Source - Abstract interface for all trade providers.

All providers MUST implement this interface to ensure:
- Isolation
- Replaceability

A trade source performs no retries of its own; retrying a failed
fetch is the reporter's responsibility.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from position_reporting.models import PowerTrade


class BaseTradeSource(ABC):
    """
    Abstract base class for all trade sources.

    Each implementation must:
    1. Implement name - Unique identifier used in logs and errors
    2. Implement get_trades() - Fetch trades for one trading date

    Raises:
        TradeSourceError: from get_trades() when trades cannot be fetched
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this trade source."""
        pass

    @abstractmethod
    async def get_trades(self, trade_date: datetime) -> List[PowerTrade]:
        """
        Fetch all trades for a trading date.

        Args:
            trade_date: Trading date, expressed in the market time zone

        Returns:
            Trades, each carrying its own periods
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass

    async def __aenter__(self) -> "BaseTradeSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

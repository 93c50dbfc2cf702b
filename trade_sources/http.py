"""
HTTP Trade Source.

Fetches trades from a REST endpoint:

    GET {base_url}/trades?date=YYYY-MM-DD

    [
        {"id": "T1", "date": "2025-09-26T00:00:00+01:00",
         "periods": [{"period": 1, "volume": 100.0}, ...]},
        ...
    ]
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp

from core.exceptions import TradeSourceError
from position_reporting.models import PowerTrade

from .base import BaseTradeSource


logger = logging.getLogger(__name__)


class HttpTradeSource(BaseTradeSource):
    """
    Trade source backed by an HTTP API.

    Owns its aiohttp session unless one is injected.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def name(self) -> str:
        return "http"

    async def get_trades(self, trade_date: datetime) -> List[PowerTrade]:
        url = f"{self._base_url}/trades"
        payload = await self._make_request(
            "GET",
            url,
            params={"date": trade_date.date().isoformat()},
        )

        if not isinstance(payload, list):
            raise TradeSourceError(
                "Malformed response: expected a list of trades",
                source_name=self.name,
                request_url=url,
            )

        try:
            trades = [PowerTrade.from_dict(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise TradeSourceError(
                f"Malformed trade payload: {e}",
                source_name=self.name,
                request_url=url,
                cause=e,
            ) from e

        logger.debug(f"[{self.name}] Received {len(trades)} trades from {url}")
        return trades

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "PowerPositionReporting/1.0",
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make HTTP request with error handling."""
        session = await self._get_session()

        start_time = time.time()
        try:
            async with session.request(method, url, params=params) as response:
                latency_ms = (time.time() - start_time) * 1000

                if response.status >= 400:
                    body = await response.text()
                    raise TradeSourceError(
                        f"HTTP {response.status}: {body[:200]}",
                        source_name=self.name,
                        status_code=response.status,
                        request_url=url,
                    )

                data = await response.json()
                logger.debug(f"[{self.name}] Request completed in {latency_ms:.1f}ms")
                return data

        except aiohttp.ClientError as e:
            raise TradeSourceError(
                f"Connection error: {e}",
                source_name=self.name,
                request_url=url,
                cause=e,
            ) from e


__all__ = ["HttpTradeSource"]

"""
Tests for Trade Sources.

============================================================
PURPOSE
============================================================
Tests for the trade providers, covering:
1. Trading day length across clock changes
2. Simulated source: shape, reproducibility, error injection
3. HTTP source: request, decoding, error mapping, session ownership

============================================================
"""

import logging
from datetime import date, datetime
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import aiohttp
import pytest

from core.exceptions import TradeSourceError
from trade_sources import HttpTradeSource, SimulatedTradeSource, periods_in_trading_day


LONDON = ZoneInfo("Europe/London")
TRADE_DATE = datetime(2025, 9, 26, 15, 0, tzinfo=LONDON)


# ============================================================
# FAKE HTTP SESSION
# ============================================================

class FakeResponse:
    """Minimal aiohttp response used as an async context manager."""

    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload
        self._text = text

    async def json(self):
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records requests and replays one response or error."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def request(self, method, url, params=None):
        self.requests.append((method, url, params))
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


# ============================================================
# TRADING DAY TESTS
# ============================================================

class TestPeriodsInTradingDay:
    """Tests for periods_in_trading_day."""

    def test_regular_day(self):
        assert periods_in_trading_day(date(2025, 9, 26), LONDON) == 24

    def test_spring_forward(self):
        assert periods_in_trading_day(date(2025, 3, 30), LONDON) == 23

    def test_fall_back(self):
        assert periods_in_trading_day(date(2025, 10, 26), LONDON) == 25


# ============================================================
# SIMULATED SOURCE TESTS
# ============================================================

class TestSimulatedTradeSource:
    """Tests for SimulatedTradeSource."""

    @pytest.mark.asyncio
    async def test_trades_cover_trading_day(self):
        source = SimulatedTradeSource(seed=1, min_trades=2, max_trades=4)

        trades = await source.get_trades(TRADE_DATE)

        assert 2 <= len(trades) <= 4
        for trade in trades:
            assert [p.period for p in trade.periods] == list(range(1, 25))
            assert trade.date == TRADE_DATE
            assert trade.trade_id

    @pytest.mark.asyncio
    async def test_same_seed_same_trades(self):
        first = await SimulatedTradeSource(seed=42).get_trades(TRADE_DATE)
        second = await SimulatedTradeSource(seed=42).get_trades(TRADE_DATE)

        assert first == second

    @pytest.mark.asyncio
    async def test_failure_injection(self):
        source = SimulatedTradeSource(failure_rate=1.0, seed=3)

        with pytest.raises(TradeSourceError) as exc_info:
            await source.get_trades(TRADE_DATE)

        assert exc_info.value.source_name == "simulated"
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_latency_uses_injected_sleep(self):
        sleep = AsyncMock()
        source = SimulatedTradeSource(seed=5, min_latency_ms=100, max_latency_ms=200, sleep=sleep)

        await source.get_trades(TRADE_DATE)

        delay = sleep.await_args.args[0]
        assert 0.1 <= delay <= 0.2

    @pytest.mark.asyncio
    async def test_autumn_clock_change_day_warns(self, caplog):
        source = SimulatedTradeSource(seed=1)

        with caplog.at_level(logging.WARNING, logger="trade_sources.simulated"):
            trades = await source.get_trades(datetime(2025, 10, 26, 12, 0, tzinfo=LONDON))

        assert [p.period for p in trades[0].periods] == list(range(1, 26))
        assert "2025-10-26 has 25 periods" in caplog.text

    @pytest.mark.asyncio
    async def test_regular_day_does_not_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="trade_sources.simulated"):
            await SimulatedTradeSource(seed=1).get_trades(TRADE_DATE)

        assert [r for r in caplog.records if r.name == "trade_sources.simulated"] == []

    def test_invalid_failure_rate(self):
        with pytest.raises(ValueError):
            SimulatedTradeSource(failure_rate=2.0)


# ============================================================
# HTTP SOURCE TESTS
# ============================================================

class TestHttpTradeSource:
    """Tests for HttpTradeSource."""

    def test_base_url_required(self):
        with pytest.raises(ValueError):
            HttpTradeSource("")

    @pytest.mark.asyncio
    async def test_requests_trades_for_date(self):
        session = FakeSession(FakeResponse(payload=[]))
        source = HttpTradeSource("http://trades.local/", session=session)

        await source.get_trades(TRADE_DATE)

        assert session.requests == [
            ("GET", "http://trades.local/trades", {"date": "2025-09-26"}),
        ]

    @pytest.mark.asyncio
    async def test_decodes_trades(self):
        payload = [{
            "id": "T-1",
            "date": "2025-09-26T00:00:00+01:00",
            "periods": [{"period": 1, "volume": 100.5}, {"period": 2, "volume": 200.0}],
        }]
        source = HttpTradeSource("http://trades.local", session=FakeSession(FakeResponse(payload=payload)))

        trades = await source.get_trades(TRADE_DATE)

        assert len(trades) == 1
        assert trades[0].trade_id == "T-1"
        assert [(p.period, p.volume) for p in trades[0].periods] == [(1, 100.5), (2, 200.0)]

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        response = FakeResponse(status=503, text="maintenance")
        source = HttpTradeSource("http://trades.local", session=FakeSession(response))

        with pytest.raises(TradeSourceError) as exc_info:
            await source.get_trades(TRADE_DATE)

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_connection_error(self):
        error = aiohttp.ClientConnectionError("refused")
        source = HttpTradeSource("http://trades.local", session=FakeSession(error=error))

        with pytest.raises(TradeSourceError) as exc_info:
            await source.get_trades(TRADE_DATE)

        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{"trades": []}, [{"date": "2025-09-26"}], [{"date": "not a date", "periods": []}]],
    )
    async def test_malformed_payload(self, payload):
        source = HttpTradeSource("http://trades.local", session=FakeSession(FakeResponse(payload=payload)))

        with pytest.raises(TradeSourceError):
            await source.get_trades(TRADE_DATE)

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        session = FakeSession(FakeResponse(payload=[]))

        async with HttpTradeSource("http://trades.local", session=session) as source:
            await source.get_trades(TRADE_DATE)

        assert not session.closed

    @pytest.mark.asyncio
    async def test_owned_session_closed(self):
        source = HttpTradeSource("http://trades.local")

        session = await source._get_session()
        await source.close()

        assert session.closed

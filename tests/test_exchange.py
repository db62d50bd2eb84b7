"""Tests for marketlens.exchange — Binance client with mocked HTTP responses."""

import pytest
import httpx

from marketlens.analysis.models import Candle, InvalidCandleError
from marketlens.config import Config
from marketlens.exchange import binance_client
from marketlens.exchange.binance_client import BinanceClient, ExchangeResponseError, Ticker


def _make_config(base_url: str = "https://api.binance.com") -> Config:
    return Config(
        trading_capital=144.0,
        risk_per_trade_pct=2.0,
        binance_base_url=base_url,
        ema_period=200,
        swing_lookback=5,
        log_level="INFO",
        health_port=8080,
    )


# ── Mock Binance responses ───────────────────────────────────────────────

MOCK_KLINES_RESPONSE = [
    [1736467200000, "94500.10", "95200.00", "94100.55", "95000.00", "1234.5",
     1736481599999, "0", 100, "0", "0", "0"],
    [1736481600000, "95000.00", "95800.00", "94900.00", "95600.00", "987.6",
     1736495999999, "0", 100, "0", "0", "0"],
]

MOCK_TICKER_RESPONSE = {
    "symbol": "BTCUSDT",
    "lastPrice": "96500.25",
    "priceChangePercent": "-1.234",
}


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip retry back-off delays, recording each requested delay."""
    delays = []

    async def _fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(binance_client.asyncio, "sleep", _fake_sleep)
    return delays


# ── Tests ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_klines(monkeypatch):
    """Candles parsed from the kline array, request params forwarded."""
    client = BinanceClient(_make_config())
    captured = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        captured["url"] = url
        captured["params"] = params
        return httpx.Response(200, json=MOCK_KLINES_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_klines("BTCUSDT", "4h", limit=2)
    assert captured["url"] == "https://api.binance.com/api/v3/klines"
    assert captured["params"] == {"symbol": "BTCUSDT", "interval": "4h", "limit": 2}
    assert len(candles) == 2
    c = candles[0]
    assert isinstance(c, Candle)
    assert c.time == 1736467200000
    assert c.open == pytest.approx(94500.10)
    assert c.close == pytest.approx(95000.0)
    assert c.volume == pytest.approx(1234.5)


@pytest.mark.asyncio
async def test_fetch_klines_error_object(monkeypatch):
    """A 200 response carrying an error object is not a kline array."""
    client = BinanceClient(_make_config())

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(
            200, json={"code": -1121, "msg": "Invalid symbol."},
            request=httpx.Request("GET", url),
        )

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(InvalidCandleError):
        await client.fetch_klines("NOPE", "4h")


@pytest.mark.asyncio
async def test_fetch_price(monkeypatch):
    client = BinanceClient(_make_config())

    async def _mock_get(self, url, *, params=None, timeout=None):
        assert url.endswith("/api/v3/ticker/24hr")
        return httpx.Response(200, json=MOCK_TICKER_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    ticker = await client.fetch_price("BTCUSDT")
    assert ticker == Ticker(symbol="BTCUSDT", price=96500.25, change_percent=-1.234)


@pytest.mark.asyncio
async def test_fetch_price_missing_last_price(monkeypatch):
    client = BinanceClient(_make_config())

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, json={"symbol": "BTCUSDT"}, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(ExchangeResponseError, match="BTCUSDT"):
        await client.fetch_price("BTCUSDT")


@pytest.mark.asyncio
async def test_retries_transient_status(monkeypatch, no_sleep):
    """503 then 200: one retry after the base delay."""
    client = BinanceClient(_make_config())
    statuses = iter([503, 200])

    async def _mock_get(self, url, *, params=None, timeout=None):
        status = next(statuses)
        body = MOCK_KLINES_RESPONSE if status == 200 else {"msg": "busy"}
        return httpx.Response(status, json=body, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_klines("BTCUSDT", "1d")
    assert len(candles) == 2
    assert no_sleep == [2.0]


@pytest.mark.asyncio
async def test_retries_exhausted(monkeypatch, no_sleep):
    """Three rate-limited responses: back-off doubles, no wait after the last."""
    client = BinanceClient(_make_config())

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(429, json={}, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_klines("BTCUSDT", "1d")
    assert no_sleep == [2.0, 4.0]


@pytest.mark.asyncio
async def test_transport_error_retried(monkeypatch, no_sleep):
    client = BinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("connection refused")
        return httpx.Response(200, json=MOCK_TICKER_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    ticker = await client.fetch_price("BTCUSDT")
    assert ticker.price == pytest.approx(96500.25)
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_client_error_not_retried(monkeypatch, no_sleep):
    client = BinanceClient(_make_config())

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(400, json={"code": -1100}, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_klines("BTCUSDT", "1d")
    assert no_sleep == []


def test_base_url_from_config():
    client = BinanceClient(_make_config("https://api.binance.us"))
    assert client._base_url == "https://api.binance.us"


@pytest.mark.asyncio
async def test_transport_errors_exhausted(monkeypatch, no_sleep):
    client = BinanceClient(_make_config())
    calls = {"n": 0}

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls["n"] += 1
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.ConnectError):
        await client.fetch_price("BTCUSDT")
    assert calls["n"] == 3
    assert no_sleep == [2.0, 4.0]

"""Tests for the internal API — /health, /analyze and /position-size."""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from marketlens.analysis.models import Candle
from marketlens.api.routers import configure_routers
from marketlens.config import Config
from marketlens.exchange.binance_client import ExchangeResponseError, Ticker
from marketlens.main import app

client = TestClient(app)


# ── Helpers ──────────────────────────────────────────────────────────────


def _candle_dicts(n: int) -> list[dict]:
    """Gently rising zig-zag series as JSON candle objects."""
    rows = []
    for i in range(n):
        base = 100 + i * 0.5 + (2 if i % 4 < 2 else -2)
        rows.append({
            "time": 1_700_000_000_000 + i * 60_000,
            "open": base,
            "high": base + 1,
            "low": base - 1,
            "close": base + 0.5,
            "volume": 10 + i,
        })
    return rows


def _candles(n: int) -> list[Candle]:
    return [Candle(**row) for row in _candle_dicts(n)]


def _exchange(candles: list[Candle], price: float = 150.0) -> AsyncMock:
    exchange = AsyncMock()
    exchange.fetch_klines.return_value = candles
    exchange.fetch_price.return_value = Ticker(symbol="BTCUSDT", price=price, change_percent=1.5)
    return exchange


def _make_config(**overrides) -> Config:
    values = dict(
        trading_capital=144.0,
        risk_per_trade_pct=2.0,
        binance_base_url="https://api.binance.com",
        ema_period=20,
        swing_lookback=2,
        log_level="INFO",
        health_port=8080,
    )
    values.update(overrides)
    return Config(**values)


@pytest.fixture(autouse=True)
def _reset_routers():
    configure_routers()
    yield
    configure_routers()


# ── Tests ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestAnalyzeEndpoint:
    def test_analyze_returns_report(self):
        resp = client.post("/analyze", json={"candles": _candle_dicts(40), "symbol": "TEST"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["symbol"] == "TEST"
        assert data["candle_count"] == 40
        assert data["ema_period"] == 200
        assert len(data["ema"]) == 40
        assert data["trend"]["direction"] in ("bullish", "bearish", "range")
        for key in ("swings", "context", "fibonacci", "fvgs", "order_blocks",
                    "order_block_ratings", "support_resistance"):
            assert key in data

    def test_analyze_accepts_raw_kline_rows(self):
        rows = [[r["time"], str(r["open"]), str(r["high"]), str(r["low"]),
                 str(r["close"]), str(r["volume"])] for r in _candle_dicts(15)]
        resp = client.post("/analyze", json={"candles": rows})
        assert resp.status_code == 200
        assert resp.json()["candle_count"] == 15

    def test_analyze_uses_body_parameters(self):
        resp = client.post("/analyze", json={"candles": _candle_dicts(30), "ema_period": 10})
        assert resp.status_code == 200
        data = resp.json()
        assert data["ema_period"] == 10
        assert data["ema"][8] is None
        assert data["ema"][9] is not None

    def test_analyze_uses_configured_defaults(self):
        configure_routers(config=_make_config(ema_period=5))
        resp = client.post("/analyze", json={"candles": _candle_dicts(30)})
        assert resp.json()["ema_period"] == 5

    def test_analyze_invalid_candle_is_422(self):
        rows = _candle_dicts(5)
        rows[2]["high"] = rows[2]["low"] - 1
        resp = client.post("/analyze", json={"candles": rows})
        assert resp.status_code == 422
        assert "high" in resp.json()["detail"]

    def test_analyze_missing_candles_is_422(self):
        resp = client.post("/analyze", json={"symbol": "X"})
        assert resp.status_code == 422

    def test_analyze_bad_parameter_is_422(self):
        resp = client.post("/analyze", json={"candles": _candle_dicts(5), "ema_period": "abc"})
        assert resp.status_code == 422
        assert resp.json()["detail"] == ["ema_period must be an integer"]

    @pytest.mark.parametrize("value", [2.7, True, "10", None])
    def test_analyze_non_integer_parameter_is_422(self, value):
        resp = client.post("/analyze", json={"candles": _candle_dicts(5), "swing_lookback": value})
        assert resp.status_code == 422
        assert resp.json()["detail"] == ["swing_lookback must be an integer"]

    def test_analyze_empty_series(self):
        resp = client.post("/analyze", json={"candles": []})
        assert resp.status_code == 200
        data = resp.json()
        assert data["candle_count"] == 0
        assert data["current_price"] is None


class TestAnalyzeSymbolEndpoint:
    def test_fetches_and_analyses(self):
        exchange = _exchange(_candles(40))
        configure_routers(client=exchange, config=_make_config())

        resp = client.get("/analyze/btcusdt?interval=1d&limit=40")
        assert resp.status_code == 200
        data = resp.json()
        assert data["symbol"] == "BTCUSDT"
        assert data["candle_count"] == 40
        assert data["ema_period"] == 20
        exchange.fetch_klines.assert_awaited_once_with("BTCUSDT", "1d", 40)
        exchange.fetch_price.assert_awaited_once_with("BTCUSDT")
        assert data["ticker"] == {
            "symbol": "BTCUSDT",
            "price": 150.0,
            "price_display": "150",
            "change_percent": 1.5,
        }

    @pytest.mark.parametrize("price,side", [(150.0, "above"), (50.0, "below")])
    def test_live_price_drives_ema_comparison(self, price, side):
        configure_routers(client=_exchange(_candles(40), price=price), config=_make_config())
        data = client.get("/analyze/BTCUSDT").json()
        assert data["current_price"] == price
        assert data["price_vs_ema"] == side

    def test_ticker_failure_is_502(self):
        exchange = _exchange(_candles(10))
        exchange.fetch_price.side_effect = ExchangeResponseError("Invalid ticker response")
        configure_routers(client=exchange)

        resp = client.get("/analyze/BTCUSDT")
        assert resp.status_code == 502

    def test_default_interval_and_limit(self):
        exchange = _exchange(_candles(10))
        configure_routers(client=exchange)

        resp = client.get("/analyze/ETHUSDT")
        assert resp.status_code == 200
        exchange.fetch_klines.assert_awaited_once_with("ETHUSDT", "4h", 200)

    def test_exchange_failure_is_502(self):
        exchange = AsyncMock()
        exchange.fetch_klines.side_effect = httpx.ConnectError("connection refused")
        configure_routers(client=exchange)

        resp = client.get("/analyze/BTCUSDT")
        assert resp.status_code == 502
        assert "Exchange error" in resp.json()["detail"]

    def test_no_client_is_503(self):
        resp = client.get("/analyze/BTCUSDT")
        assert resp.status_code == 503

    def test_limit_out_of_range_is_422(self):
        configure_routers(client=AsyncMock())
        resp = client.get("/analyze/BTCUSDT?limit=5000")
        assert resp.status_code == 422


class TestPositionSizeEndpoint:
    def test_position_size_defaults(self):
        resp = client.post("/position-size", json={"entry_price": 96500, "stop_price": 95000})
        assert resp.status_code == 200
        assert resp.json() == {
            "quantity": "0.001920",
            "risk_amount": "$2.88",
            "risk_percent": "2%",
        }

    def test_position_size_explicit_risk(self):
        resp = client.post("/position-size", json={
            "capital": 1000, "risk_percent": 1.5,
            "entry_price": 100, "stop_price": 90,
        })
        assert resp.json() == {
            "quantity": "1.5000",
            "risk_amount": "$15.00",
            "risk_percent": "1.5%",
        }

    def test_position_size_uses_config(self):
        configure_routers(config=_make_config(trading_capital=1000.0, risk_per_trade_pct=1.0))
        resp = client.post("/position-size", json={"entry_price": 96000, "stop_price": 95000})
        assert resp.json()["risk_amount"] == "$10.00"
        assert resp.json()["risk_percent"] == "1%"

    def test_zero_distance(self):
        resp = client.post("/position-size", json={"entry_price": 100, "stop_price": 100})
        assert resp.status_code == 200
        assert resp.json()["quantity"] == "0"

    def test_missing_prices_is_422(self):
        resp = client.post("/position-size", json={"entry_price": 100})
        assert resp.status_code == 422
        assert "stop_price is required" in resp.json()["detail"]

    def test_invalid_values_are_422(self):
        resp = client.post("/position-size", json={
            "capital": -5, "risk_percent": 2, "entry_price": "abc", "stop_price": 90,
        })
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert "entry_price must be a number" in detail
        assert "capital must be positive" in detail

    def test_null_capital_is_422(self):
        resp = client.post("/position-size", json={
            "entry_price": 100, "stop_price": 90, "capital": None,
        })
        assert resp.status_code == 422
        assert resp.json()["detail"] == ["capital must be a number"]

    def test_null_price_is_required(self):
        resp = client.post("/position-size", json={"entry_price": None, "stop_price": 90})
        assert resp.status_code == 422
        assert resp.json()["detail"] == ["entry_price is required"]

    def test_boolean_risk_is_422(self):
        resp = client.post("/position-size", json={
            "entry_price": 100, "stop_price": 90, "risk_percent": True,
        })
        assert resp.status_code == 422
        assert "risk_percent must be a number" in resp.json()["detail"]

    def test_half_cent_risk_rounds_up(self):
        resp = client.post("/position-size", json={
            "capital": 6.25, "risk_percent": 2, "entry_price": 100, "stop_price": 90,
        })
        assert resp.json()["risk_amount"] == "$0.13"

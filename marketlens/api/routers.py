"""Internal API routers — /analyze and /position-size endpoints.

No analysis logic. Delegates to the engine, the formatting layer and the
injected exchange client.
"""

import logging
import math
from dataclasses import asdict
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Query

from marketlens.analysis.models import InvalidCandleError
from marketlens.analysis.report import build_report
from marketlens.config import Config
from marketlens.exchange.binance_client import ExchangeResponseError
from marketlens.exchange.klines import parse_klines
from marketlens.formatting import report_to_dict, size_position, ticker_to_dict

logger = logging.getLogger("marketlens")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_client = None  # Set via configure_routers()
_config: Optional[Config] = None  # Set via configure_routers()

_DEFAULT_CAPITAL = 144.0
_DEFAULT_RISK_PCT = 2.0

_REPORT_PARAMS = ("ema_period", "swing_lookback", "fvg_lookback", "ob_lookback")


def configure_routers(client=None, config: Optional[Config] = None) -> None:
    """Inject dependencies from the application startup.

    Args:
        client: A ``BinanceClient`` instance (or duck-type for tests).
        config: Loaded ``Config``; supplies capital/risk defaults and the
            EMA period / swing lookback used by ``/analyze/{symbol}``.
    """
    global _client, _config  # noqa: PLW0603
    _client = client
    _config = config


def _report_kwargs(body: dict) -> dict:
    kwargs = {}
    if _config is not None:
        kwargs["ema_period"] = _config.ema_period
        kwargs["swing_lookback"] = _config.swing_lookback
    errors = []
    for key in _REPORT_PARAMS:
        if key not in body:
            continue
        value = body[key]
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{key} must be an integer")
            continue
        if value < 1:
            errors.append(f"{key} must be at least 1")
        else:
            kwargs[key] = value
    if errors:
        raise HTTPException(status_code=422, detail=errors)
    return kwargs


@router.post("/analyze")
async def analyze(body: dict):
    """Analyse a caller-supplied candle series."""
    try:
        candles = parse_klines(body.get("candles"))
    except InvalidCandleError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    report = build_report(candles, symbol=body.get("symbol"), **_report_kwargs(body))
    return report_to_dict(report)


@router.get("/analyze/{symbol}")
async def analyze_symbol(
    symbol: str,
    interval: str = Query("4h"),
    limit: int = Query(200, ge=1, le=1000),
):
    """Fetch klines and the live price for *symbol* and analyse them.

    The live ticker price, not the last kline close, drives the EMA
    comparison and order-block freshness.
    """
    if _client is None:
        raise HTTPException(status_code=503, detail="Exchange client not configured")

    symbol = symbol.upper()
    try:
        candles = await _client.fetch_klines(symbol, interval, limit)
        ticker = await _client.fetch_price(symbol)
    except (httpx.HTTPError, InvalidCandleError, ExchangeResponseError) as exc:
        logger.error("Market data fetch failed for %s %s: %s", symbol, interval, exc)
        raise HTTPException(status_code=502, detail=f"Exchange error: {exc}") from exc

    report = build_report(
        candles, symbol=symbol, current_price=ticker.price, **_report_kwargs({})
    )
    data = report_to_dict(report)
    data["ticker"] = ticker_to_dict(ticker)
    return data


@router.post("/position-size")
async def position_size(body: dict):
    """Size a position from entry/stop and account risk settings."""
    errors = []
    values = {}
    default_capital = _config.trading_capital if _config else _DEFAULT_CAPITAL
    default_risk = _config.risk_per_trade_pct if _config else _DEFAULT_RISK_PCT
    fields = {
        "capital": body.get("capital", default_capital),
        "risk_percent": body.get("risk_percent", default_risk),
        "entry_price": body.get("entry_price"),
        "stop_price": body.get("stop_price"),
    }
    for key, raw in fields.items():
        # null prices count as missing; null capital/risk is a bad value
        if raw is None and key in ("entry_price", "stop_price"):
            errors.append(f"{key} is required")
            continue
        if raw is None or isinstance(raw, bool):
            errors.append(f"{key} must be a number")
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError):
            errors.append(f"{key} must be a number")
            continue
        if not math.isfinite(value):
            errors.append(f"{key} must be a number")
            continue
        values[key] = value
    if "capital" in values and values["capital"] <= 0:
        errors.append("capital must be positive")
    if "risk_percent" in values and not 0 < values["risk_percent"] <= 100:
        errors.append("risk_percent must be in (0, 100]")
    if errors:
        raise HTTPException(status_code=422, detail=errors)

    result = size_position(
        values["capital"],
        values["risk_percent"],
        values["entry_price"],
        values["stop_price"],
    )
    return asdict(result)

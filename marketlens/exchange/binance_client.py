"""Binance spot REST API async client.

Fetches klines and 24h ticker data.  Public market-data endpoints only,
no authentication.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from marketlens.analysis.models import Candle
from marketlens.config import Config
from marketlens.exchange.klines import parse_klines

logger = logging.getLogger("marketlens")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


class ExchangeResponseError(RuntimeError):
    """Raised when the exchange returns a payload we cannot interpret."""


@dataclass(frozen=True)
class Ticker:
    """Last price and 24h change for a symbol."""

    symbol: str
    price: float
    change_percent: float


class BinanceClient:
    """Async client wrapping the Binance v3 market-data API."""

    def __init__(self, config: Config) -> None:
        self._base_url = config.binance_base_url

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _backoff(self, url: str, reason: str, attempt: int) -> None:
        """Log a failed attempt and wait before the next one.

        No wait after the final attempt; the caller raises straight away.
        """
        if attempt == _MAX_RETRIES - 1:
            logger.warning(
                "Binance GET %s %s — giving up after %d attempts",
                url, reason, _MAX_RETRIES,
            )
            return
        delay = _RETRY_BASE_DELAY * (2 ** attempt)
        logger.warning(
            "Binance GET %s %s — retry %d/%d in %.1fs",
            url, reason, attempt + 1, _MAX_RETRIES, delay,
        )
        await asyncio.sleep(delay)

    async def _get_with_retry(self, url: str, params: dict) -> httpx.Response:
        """GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, params=params, timeout=30.0)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await self._backoff(url, f"returned {resp.status_code}", attempt)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                last_exc = exc
                await self._backoff(url, f"transport error ({exc})", attempt)

        # All retries exhausted, raise the last error
        raise last_exc  # type: ignore[misc]

    # ── Market data ──────────────────────────────────────────────────────

    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        limit: int = 200,
    ) -> list[Candle]:
        """Fetch candlestick data.

        Args:
            symbol: e.g. ``"BTCUSDT"``
            interval: e.g. ``"1d"``, ``"4h"``, ``"30m"``
            limit: number of candles to request (max 1000)

        Returns:
            List of ``Candle`` objects ordered oldest-first.

        Raises:
            InvalidCandleError: if the payload is not a kline array.
        """
        url = f"{self._base_url}/api/v3/klines"
        params = {"symbol": symbol, "interval": interval, "limit": limit}
        resp = await self._get_with_retry(url, params)
        return parse_klines(resp.json())

    async def fetch_price(self, symbol: str) -> Ticker:
        """Fetch the last price and 24h percent change for *symbol*."""
        url = f"{self._base_url}/api/v3/ticker/24hr"
        resp = await self._get_with_retry(url, {"symbol": symbol})

        data = resp.json()
        if not isinstance(data, dict) or not data.get("lastPrice"):
            raise ExchangeResponseError(f"Invalid ticker response for {symbol}: {data!r}")
        return Ticker(
            symbol=symbol,
            price=float(data["lastPrice"]),
            change_percent=float(data.get("priceChangePercent") or 0.0),
        )

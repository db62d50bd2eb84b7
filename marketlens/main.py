"""MarketLens — application entry point.

Exposes the FastAPI internal server and the CLI entry point for one-off
analysis of a candle file or a live exchange symbol.
"""

import json
import logging
import sys

from fastapi import FastAPI

from marketlens.api.routers import router

app = FastAPI(title="MarketLens Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("marketlens")


@app.get("/health")
async def health():
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description="MarketLens market-structure analysis",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--file",
        help="JSON file holding candle objects or raw Binance kline rows",
    )
    source.add_argument("--symbol", help="Exchange symbol, e.g. BTCUSDT")
    source.add_argument(
        "--serve",
        action="store_true",
        help="Run the internal API server",
    )
    parser.add_argument("--interval", default="4h", help="Kline interval (default: 4h)")
    parser.add_argument("--limit", type=int, default=200, help="Candles to fetch (default: 200)")
    parser.add_argument("--entry", type=float, help="Entry price for position sizing")
    parser.add_argument("--stop", type=float, help="Stop price for position sizing")
    return parser


async def _fetch_market(client, symbol: str, interval: str, limit: int):
    candles = await client.fetch_klines(symbol, interval, limit)
    ticker = await client.fetch_price(symbol)
    return candles, ticker


def run_analysis(args, config) -> dict:
    """Load candles for *args*, analyse them and return a JSON-ready dict."""
    import asyncio
    import pathlib
    from dataclasses import asdict

    from marketlens.analysis.report import build_report
    from marketlens.exchange.binance_client import BinanceClient
    from marketlens.exchange.klines import parse_klines
    from marketlens.formatting import report_to_dict, size_position, ticker_to_dict

    if args.file:
        payload = json.loads(pathlib.Path(args.file).read_text(encoding="utf-8"))
        candles = parse_klines(payload)
        symbol = None
        ticker = None
    else:
        symbol = args.symbol.upper()
        candles, ticker = asyncio.run(
            _fetch_market(BinanceClient(config), symbol, args.interval, args.limit)
        )

    logger.info("Analysing %d candle(s)%s.", len(candles), f" for {symbol}" if symbol else "")
    report = build_report(
        candles,
        ema_period=config.ema_period,
        swing_lookback=config.swing_lookback,
        symbol=symbol,
        current_price=ticker.price if ticker else None,
    )
    output = {"report": report_to_dict(report)}
    if ticker is not None:
        output["ticker"] = ticker_to_dict(ticker)

    if args.entry is not None and args.stop is not None:
        output["position_size"] = asdict(size_position(
            config.trading_capital,
            config.risk_per_trade_pct,
            args.entry,
            args.stop,
        ))
    return output


def _run_server(config) -> None:
    import uvicorn

    from marketlens.api.routers import configure_routers
    from marketlens.exchange.binance_client import BinanceClient

    configure_routers(client=BinanceClient(config), config=config)
    logger.info("API available at http://localhost:%d", config.health_port)
    uvicorn.run(app, host="0.0.0.0", port=config.health_port, log_level="info")


def _run_cli(argv=None) -> int:
    """Parse CLI arguments and dispatch to analysis or server mode."""
    from marketlens.config import load_config

    args = _build_parser().parse_args(argv)
    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.serve:
        _run_server(config)
        return 0

    if (args.entry is None) != (args.stop is None):
        logger.error("--entry and --stop must be given together.")
        return 2

    import httpx

    from marketlens.exchange.binance_client import ExchangeResponseError

    try:
        output = run_analysis(args, config)
    except (OSError, ValueError, httpx.HTTPError, ExchangeResponseError) as exc:
        # ValueError covers malformed JSON and InvalidCandleError
        logger.error("Analysis failed: %s", exc)
        return 1

    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(_run_cli())

"""Report aggregation — runs every detector over one candle series.

No analysis logic lives here beyond composition.  Each detector runs
independently; if one raises, its field falls back to an empty/default
value and the rest of the report is still produced.
"""

import logging
from typing import Callable, Optional, TypeVar

from marketlens.analysis.fibonacci import fibonacci_from_trend
from marketlens.analysis.fvg import detect_fvgs
from marketlens.analysis.indicators import ema_of_candles
from marketlens.analysis.models import (
    AnalysisReport,
    Candle,
    MarketContext,
    SupportResistance,
    SwingPoints,
    TrendDirection,
    TrendResult,
)
from marketlens.analysis.order_blocks import detect_order_blocks, rate_order_block
from marketlens.analysis.sr_zones import find_support_resistance
from marketlens.analysis.swings import find_swings
from marketlens.analysis.trend import classify_trend, detect_context

logger = logging.getLogger("marketlens")

T = TypeVar("T")

_RANGE_TREND = TrendResult(direction=TrendDirection.RANGE, structure_label="RANGE")


def _safe(name: str, fn: Callable[[], T], default: T) -> T:
    """Run one detector, degrading to *default* if it raises."""
    try:
        return fn()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Analysis step '%s' failed, using default: %s", name, exc)
        return default


def build_report(
    candles: list[Candle],
    *,
    ema_period: int = 200,
    swing_lookback: int = 5,
    fvg_lookback: int = 30,
    ob_lookback: int = 50,
    sr_tolerance: float = 0.005,
    symbol: Optional[str] = None,
    current_price: Optional[float] = None,
) -> AnalysisReport:
    """Assemble the full market-structure report for *candles*.

    Args:
        candles: Candle history, oldest-first.
        ema_period: EMA period for the trend filter (default 200).
        swing_lookback: Half-window for swing detection.
        fvg_lookback: Candles scanned for fair value gaps.
        ob_lookback: Candles scanned for order blocks.
        sr_tolerance: Relative clustering tolerance for S/R levels.
        symbol: Optional label carried through to the report.
        current_price: Live price for the EMA comparison, order-block
            freshness and rating.  Defaults to the last close.

    Returns:
        An immutable ``AnalysisReport``.  Short histories simply produce
        empty detector outputs.
    """
    if current_price is None and candles:
        current_price = candles[-1].close

    ema = _safe("ema", lambda: ema_of_candles(candles, ema_period), [])
    ema_last = ema[-1] if ema else None
    price_vs_ema: Optional[str] = None
    if ema_last is not None and current_price is not None:
        price_vs_ema = "above" if current_price > ema_last else "below"

    swings = _safe(
        "swings", lambda: find_swings(candles, swing_lookback), SwingPoints()
    )
    trend = _safe(
        "trend", lambda: classify_trend(swings.highs, swings.lows), _RANGE_TREND
    )
    context = _safe(
        "context", lambda: detect_context(candles, trend), MarketContext.RANGE
    )
    fib = _safe("fibonacci", lambda: fibonacci_from_trend(trend), None)
    fvgs = _safe("fvg", lambda: detect_fvgs(candles, fvg_lookback), [])
    order_blocks = _safe(
        "order_blocks",
        lambda: detect_order_blocks(candles, ob_lookback, current_price),
        [],
    )
    ratings = _safe(
        "order_block_rating",
        lambda: [
            rate_order_block(
                ob, trend, fvgs, fib, swings.highs, swings.lows, current_price
            )
            for ob in order_blocks
        ],
        [],
    )
    sr = _safe(
        "support_resistance",
        lambda: find_support_resistance(candles, sr_tolerance),
        SupportResistance(),
    )

    logger.debug(
        "Report %s: %d candles, trend=%s, %d FVG, %d OB",
        symbol or "-", len(candles), trend.direction.value,
        len(fvgs), len(order_blocks),
    )

    return AnalysisReport(
        symbol=symbol,
        candle_count=len(candles),
        current_price=current_price,
        ema_period=ema_period,
        ema=tuple(ema),
        ema_last=ema_last,
        price_vs_ema=price_vs_ema,
        swings=swings,
        trend=trend,
        context=context,
        fibonacci=fib,
        fvgs=tuple(fvgs),
        order_blocks=tuple(order_blocks),
        order_block_ratings=tuple(ratings),
        support_resistance=sr,
    )

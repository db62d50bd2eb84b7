"""Trend detection — market-structure bias and market context.

Provides two detection modes:
- ``classify_trend()``: Higher-high / higher-low counting over the most
  recent swing points.
- ``detect_context()``: Coarse regime label (expansion, retracement,
  reversal, range) from recent volume, candle ranges and the trend's swings.
"""

from typing import Sequence

from marketlens.analysis.models import (
    Candle,
    MarketContext,
    SwingPoint,
    TrendDirection,
    TrendResult,
)

RECENT_SWINGS = 4

# Expansion thresholds: recent activity vs the preceding window
_EXPANSION_VOLUME_MULT = 1.5
_EXPANSION_RANGE_MULT = 1.5
_RETRACEMENT_CANDLES = 5


def _count_steps(points: Sequence[SwingPoint]) -> tuple[int, int]:
    """Return (higher, lower) counts over consecutive pairs.

    Equal prices count as "lower".
    """
    higher = 0
    lower = 0
    for i in range(1, len(points)):
        if points[i].price > points[i - 1].price:
            higher += 1
        else:
            lower += 1
    return higher, lower


def classify_trend(
    swing_highs: Sequence[SwingPoint],
    swing_lows: Sequence[SwingPoint],
) -> TrendResult:
    """Classify market structure from chronological swing points.

    Only the last four highs and lows are considered.

    Rules (evaluated in this order):
        - **Bullish** (HHHL): hh >= lh AND hl >= ll AND hh + hl > 1.
        - **Bearish** (LHLL): lh >= hh AND ll >= hl AND lh + ll > 1.
        - **Range**: everything else.

    When the counts tie on both axes, both rules hold and bullish wins
    because it is checked first.
    """
    recent_highs = tuple(swing_highs[-RECENT_SWINGS:])
    recent_lows = tuple(swing_lows[-RECENT_SWINGS:])

    hh, lh = _count_steps(recent_highs)
    hl, ll = _count_steps(recent_lows)

    if hh >= lh and hl >= ll and (hh + hl) > 1:
        direction, label = TrendDirection.BULLISH, "HHHL"
    elif lh >= hh and ll >= hl and (lh + ll) > 1:
        direction, label = TrendDirection.BEARISH, "LHLL"
    else:
        direction, label = TrendDirection.RANGE, "RANGE"

    return TrendResult(
        direction=direction,
        structure_label=label,
        recent_highs=recent_highs,
        recent_lows=recent_lows,
    )


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def _is_expansion(candles: list[Candle]) -> bool:
    """Recent volume and range both 1.5× their preceding windows.

    Needs the full 50-candle window.  Shorter series are never expansion,
    rather than averaging a partial window over a fixed 40/20 divisor,
    which would let 30-49 candle series qualify on understated baselines.
    """
    if len(candles) < 50:
        return False
    recent = candles[-10:]
    avg_volume = _mean([c.volume for c in candles[-50:-10]])
    recent_volume = _mean([c.volume for c in recent])
    recent_range = _mean([c.high - c.low for c in recent])
    older_range = _mean([c.high - c.low for c in candles[-30:-10]])
    return (
        recent_volume > avg_volume * _EXPANSION_VOLUME_MULT
        and recent_range > older_range * _EXPANSION_RANGE_MULT
    )


def detect_context(candles: list[Candle], trend: TrendResult) -> MarketContext:
    """Label the current market regime.

    Checks, in order:
        1. **Expansion**: last 10 candles carry > 1.5× the volume of
           candles [-50, -10) and > 1.5× the average range of [-30, -10).
        2. **Retracement**: trending market whose last 5 closes move
           steadily against the trend.
        3. **Reversal**: the latest swing high and swing low both broke
           against the prevailing trend.
        4. **Range**: everything else.
    """
    if _is_expansion(candles):
        return MarketContext.EXPANSION

    if trend.direction is not TrendDirection.RANGE and len(candles) >= 2:
        last = candles[-_RETRACEMENT_CANDLES:]
        closes = [c.close for c in last]
        pairs = list(zip(closes, closes[1:]))
        if trend.direction is TrendDirection.BULLISH:
            pullback = all(cur <= prev for prev, cur in pairs)
        else:
            pullback = all(cur >= prev for prev, cur in pairs)
        if pullback:
            return MarketContext.RETRACEMENT

    highs = trend.recent_highs
    lows = trend.recent_lows
    if len(highs) >= 3 and len(lows) >= 3:
        lower_high = highs[-1].price < highs[-2].price
        lower_low = lows[-1].price < lows[-2].price
        higher_high = highs[-1].price > highs[-2].price
        higher_low = lows[-1].price > lows[-2].price
        if trend.direction is TrendDirection.BULLISH and lower_high and lower_low:
            return MarketContext.REVERSAL
        if trend.direction is TrendDirection.BEARISH and higher_high and higher_low:
            return MarketContext.REVERSAL

    return MarketContext.RANGE

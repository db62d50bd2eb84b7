"""Fibonacci retracement levels — pure math, no I/O."""

from typing import Optional

from marketlens.analysis.models import (
    FibLevel,
    FibonacciLevels,
    TrendDirection,
    TrendResult,
)

RETRACEMENT_RATIOS = (0.236, 0.382, 0.5, 0.618, 0.786)


def calculate_fibonacci(
    swing_low: float,
    swing_high: float,
    is_bullish: bool,
) -> FibonacciLevels:
    """Calculate the seven-level retracement table for a swing.

    Bullish bias measures retracements down from *swing_high*::

        0%    → swing_low
        x%    → swing_high - range × x      (23.6 … 78.6)
        100%  → swing_high

    Bearish bias mirrors the table up from *swing_low*::

        0%    → swing_high
        x%    → swing_low + range × x
        100%  → swing_low

    ``swing_high > swing_low`` is the caller's responsibility; an inverted
    pair gives a negative range and the levels mirror accordingly.
    """
    price_range = swing_high - swing_low

    if is_bullish:
        inner = [swing_high - price_range * r for r in RETRACEMENT_RATIOS]
        first, last = swing_low, swing_high
    else:
        inner = [swing_low + price_range * r for r in RETRACEMENT_RATIOS]
        first, last = swing_high, swing_low

    levels = [FibLevel(0.0, first)]
    levels += [
        FibLevel(round(r * 100, 1), price)
        for r, price in zip(RETRACEMENT_RATIOS, inner)
    ]
    levels.append(FibLevel(100.0, last))

    return FibonacciLevels(
        swing_low=swing_low,
        swing_high=swing_high,
        levels=tuple(levels),
        zone50=inner[2],
        zone618=inner[3],
        zone786=inner[4],
        is_bullish=is_bullish,
    )


def fibonacci_from_trend(trend: TrendResult) -> Optional[FibonacciLevels]:
    """Fibonacci table over the trend's most recent swing low / swing high.

    Returns ``None`` when either side has no swings or the last high is
    not above the last low.
    """
    if not trend.recent_lows or not trend.recent_highs:
        return None

    last_low = trend.recent_lows[-1].price
    last_high = trend.recent_highs[-1].price
    if last_high <= last_low:
        return None

    return calculate_fibonacci(
        last_low, last_high, trend.direction is TrendDirection.BULLISH
    )

"""Swing point (fractal) detection — pure functions."""

from marketlens.analysis.models import Candle, SwingKind, SwingPoint, SwingPoints


def _is_swing_high(candles: list[Candle], i: int, lookback: int) -> bool:
    high = candles[i].high
    for j in range(1, lookback + 1):
        if candles[i - j].high >= high or candles[i + j].high >= high:
            return False
    return True


def _is_swing_low(candles: list[Candle], i: int, lookback: int) -> bool:
    low = candles[i].low
    for j in range(1, lookback + 1):
        if candles[i - j].low <= low or candles[i + j].low <= low:
            return False
    return True


def find_swings(candles: list[Candle], lookback: int = 5) -> SwingPoints:
    """Identify swing highs and lows.

    A swing high is a candle whose high is strictly higher than the highs
    of the *lookback* candles on each side; a swing low is the mirror
    image.  Candles closer than *lookback* to either end of the series are
    never swings, so a series shorter than ``2 * lookback + 1`` yields two
    empty lists.

    Returns:
        ``SwingPoints`` with both lists in chronological order.
    """
    if lookback < 1:
        raise ValueError(f"lookback must be at least 1, got {lookback}")

    highs: list[SwingPoint] = []
    lows: list[SwingPoint] = []
    for i in range(lookback, len(candles) - lookback):
        candle = candles[i]
        if _is_swing_high(candles, i, lookback):
            highs.append(SwingPoint(i, candle.high, candle.time, SwingKind.HIGH))
        if _is_swing_low(candles, i, lookback):
            lows.append(SwingPoint(i, candle.low, candle.time, SwingKind.LOW))

    return SwingPoints(highs=tuple(highs), lows=tuple(lows))

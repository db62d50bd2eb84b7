"""Order-block detection and quality rating — pure functions, no I/O.

An order block is the last opposite-direction candle before a strong
move.  A bullish block is a bearish candle followed by a bullish candle
whose body is more than 1.5× larger; bearish blocks are the mirror image.
Blocks stay "fresh" until price trades back through them.
"""

from typing import Optional, Sequence

from marketlens.analysis.models import (
    FVG,
    Candle,
    FibonacciLevels,
    OrderBlock,
    OrderBlockRating,
    SwingPoint,
    TrendDirection,
    TrendResult,
    ZoneType,
)

MAX_RESULTS = 5
DISPLACEMENT_MULT = 1.5

# Rating tolerances, as fractions of the current price
_FVG_PROXIMITY = 0.01
_FVG_CONTAINMENT_SLACK = 0.02
_EQUAL_LEVEL_TOLERANCE = 0.003
_LIQUIDITY_PROXIMITY = 0.01


def detect_order_blocks(
    candles: list[Candle],
    max_lookback: int = 50,
    current_price: Optional[float] = None,
) -> list[OrderBlock]:
    """Detect fresh order blocks in the last *max_lookback* candles.

    Args:
        candles: Candle history, oldest-first.
        max_lookback: Number of most-recent candles to scan.
        current_price: Price used for the freshness test.  Defaults to the
            last close.

    Returns:
        Up to five of the most recent fresh blocks, oldest first.  Stale
        blocks are detected but never returned.
    """
    if not candles:
        return []
    if current_price is None:
        current_price = candles[-1].close

    start = max(0, len(candles) - max_lookback)
    blocks: list[OrderBlock] = []

    for i in range(start + 1, len(candles) - 1):
        prev = candles[i]
        nxt = candles[i + 1]
        strong = nxt.body > prev.body * DISPLACEMENT_MULT

        if prev.is_bearish and nxt.is_bullish and strong:
            blocks.append(OrderBlock(
                ZoneType.BULLISH, high=prev.high, low=prev.low, index=i,
                fresh=current_price > prev.low,
            ))
        if prev.is_bullish and nxt.is_bearish and strong:
            blocks.append(OrderBlock(
                ZoneType.BEARISH, high=prev.high, low=prev.low, index=i,
                fresh=current_price < prev.high,
            ))

    return [ob for ob in blocks if ob.fresh][-MAX_RESULTS:]


def _has_nearby_fvg(ob: OrderBlock, fvgs: Sequence[FVG], price: float) -> bool:
    for f in fvgs:
        if f.type is not ob.type:
            continue
        if ob.type is ZoneType.BULLISH:
            if abs(f.low - ob.high) / price < _FVG_PROXIMITY:
                return True
            if f.low >= ob.low and f.high <= ob.high * (1 + _FVG_CONTAINMENT_SLACK):
                return True
        else:
            if abs(f.high - ob.low) / price < _FVG_PROXIMITY:
                return True
            if f.high <= ob.high and f.low >= ob.low * (1 - _FVG_CONTAINMENT_SLACK):
                return True
    return False


def _equal_levels(points: Sequence[SwingPoint], price: float) -> list[SwingPoint]:
    """Swing points sitting level with the previous one (resting liquidity)."""
    return [
        p for i, p in enumerate(points)
        if i > 0 and abs(p.price - points[i - 1].price) / price < _EQUAL_LEVEL_TOLERANCE
    ]


def rate_order_block(
    ob: OrderBlock,
    trend: TrendResult,
    fvgs: Sequence[FVG],
    fib: Optional[FibonacciLevels],
    swing_highs: Sequence[SwingPoint],
    swing_lows: Sequence[SwingPoint],
    price: float,
) -> OrderBlockRating:
    """Score an order block out of five.

    One point each for: a same-direction FVG next to or inside the block,
    alignment with the trend, freshness, sitting in the discount (bullish)
    or premium (bearish) half of the Fibonacci range, and distance from
    equal highs/lows where stops cluster.
    """
    score = 0
    details: list[str] = []

    if _has_nearby_fvg(ob, fvgs, price):
        score += 1
        details.append("FVG nearby")
    else:
        details.append("No FVG")

    aligned = (
        (ob.type is ZoneType.BULLISH and trend.direction is TrendDirection.BULLISH)
        or (ob.type is ZoneType.BEARISH and trend.direction is TrendDirection.BEARISH)
    )
    if aligned:
        score += 1
        details.append("With trend")
    else:
        details.append("Against trend")

    if ob.fresh:
        score += 1
        details.append("Fresh")
    else:
        details.append("Mitigated")

    if fib is not None:
        if ob.type is ZoneType.BULLISH and ob.midpoint < fib.zone50:
            score += 1
            details.append("Discount zone")
        elif ob.type is ZoneType.BEARISH and ob.midpoint > fib.zone50:
            score += 1
            details.append("Premium zone")
        else:
            details.append("Wrong Fibonacci zone")

    near_equal_high = any(
        abs(p.price - ob.high) / price < _LIQUIDITY_PROXIMITY
        for p in _equal_levels(swing_highs, price)
    )
    near_equal_low = any(
        abs(p.price - ob.low) / price < _LIQUIDITY_PROXIMITY
        for p in _equal_levels(swing_lows, price)
    )
    if not near_equal_high and not near_equal_low:
        score += 1
        details.append("Away from liquidity")
    else:
        details.append("Near liquidity")

    return OrderBlockRating(order_block=ob, score=score, details=tuple(details))

"""Support/resistance levels from clustered swing points — pure functions."""

from marketlens.analysis.models import Candle, SupportResistance
from marketlens.analysis.swings import find_swings

SR_SWING_LOOKBACK = 3
MIN_TOUCHES = 2
MAX_LEVELS = 3


def _cluster_levels(points: list[float], tolerance: float) -> list[tuple[float, int]]:
    """Cluster nearby prices into levels.

    Each price joins the first existing level within *tolerance* (relative
    distance) and pulls that level's price halfway towards itself;
    otherwise it starts a new level.  Returns ``(price, touches)`` pairs in
    creation order.
    """
    levels: list[list] = []
    for p in points:
        for level in levels:
            if abs(level[0] - p) / p < tolerance:
                level[0] = (level[0] + p) / 2
                level[1] += 1
                break
        else:
            levels.append([p, 1])
    return [(price, touches) for price, touches in levels]


def find_support_resistance(
    candles: list[Candle],
    tolerance: float = 0.005,
) -> SupportResistance:
    """Detect the nearest horizontal support and resistance levels.

    Args:
        candles: Candle history, oldest-first.
        tolerance: Relative distance within which swing points belong to
            the same level (0.005 = 0.5 %).

    Returns:
        Up to three supports below the last close (highest last) and up to
        three resistances above it (lowest first).  Only levels touched at
        least twice are kept.
    """
    if not candles:
        return SupportResistance()

    price = candles[-1].close
    swings = find_swings(candles, SR_SWING_LOOKBACK)
    points = [h.price for h in swings.highs] + [l.price for l in swings.lows]

    strong = sorted(
        price_level
        for price_level, touches in _cluster_levels(points, tolerance)
        if touches >= MIN_TOUCHES
    )

    supports = [lvl for lvl in strong if lvl < price][-MAX_LEVELS:]
    resistances = [lvl for lvl in strong if lvl > price][:MAX_LEVELS]
    return SupportResistance(supports=tuple(supports), resistances=tuple(resistances))

"""Fair-value-gap detection — three-candle imbalance scanner."""

from marketlens.analysis.models import FVG, Candle, ZoneType

MAX_RESULTS = 5


def detect_fvgs(candles: list[Candle], max_lookback: int = 30) -> list[FVG]:
    """Find fair value gaps in the last *max_lookback* candles.

    For each triplet ``(c1, c2, c3)``:
        - **Bullish**: ``c1.high < c3.low`` and ``c2`` closes up.
          Gap = ``[c1.high, c3.low]``.
        - **Bearish**: ``c1.low > c3.high`` and ``c2`` closes down.
          Gap = ``[c3.high, c1.low]``.

    ``FVG.index`` is the position of ``c2`` (the displacement candle) in
    the full series.

    Returns:
        The most recent five gaps, oldest first.
    """
    start = max(0, len(candles) - max_lookback)
    fvgs: list[FVG] = []

    for i in range(start + 2, len(candles)):
        c1 = candles[i - 2]
        c2 = candles[i - 1]
        c3 = candles[i]

        if c1.high < c3.low and c2.is_bullish:
            fvgs.append(FVG(ZoneType.BULLISH, high=c3.low, low=c1.high, index=i - 1))
        if c1.low > c3.high and c2.is_bearish:
            fvgs.append(FVG(ZoneType.BEARISH, high=c1.low, low=c3.high, index=i - 1))

    return fvgs[-MAX_RESULTS:]

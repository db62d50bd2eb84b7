"""Technical indicators — EMA over closing prices. Pure functions, no I/O."""

from typing import Optional

from marketlens.analysis.models import Candle


def calculate_ema(closes: list[float], period: int) -> list[Optional[float]]:
    """Calculate an Exponential Moving Average series.

    Uses the standard EMA formula:
        ``EMA_today = close × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first value is seeded with the SMA of the first
    ``min(period, len(closes))`` closes and placed at that position, so a
    series shorter than *period* still yields a single value (the SMA of
    everything available).

    Returns a list the same length as *closes*.  Entries before the seed
    are ``None``.

    Raises ``ValueError`` if *period* is not positive.
    """
    if period <= 0:
        raise ValueError(f"EMA period must be positive, got {period}")

    n = len(closes)
    if n == 0:
        return []

    k = 2.0 / (period + 1)
    ema: list[Optional[float]] = [None] * n

    # Seed: SMA of the first min(period, n) closes
    seed_len = min(period, n)
    ema[seed_len - 1] = sum(closes[:seed_len]) / seed_len

    for i in range(seed_len, n):
        ema[i] = closes[i] * k + ema[i - 1] * (1 - k)

    return ema


def ema_of_candles(candles: list[Candle], period: int) -> list[Optional[float]]:
    """Convenience wrapper: EMA of the candles' closes."""
    return calculate_ema([c.close for c in candles], period)

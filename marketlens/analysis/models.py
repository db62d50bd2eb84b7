"""Analysis data models — typed representations for candles and engine outputs."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class InvalidCandleError(ValueError):
    """Raised when candle input is structurally invalid."""


class SwingKind(str, Enum):
    HIGH = "high"
    LOW = "low"


class TrendDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    RANGE = "range"


class ZoneType(str, Enum):
    """Direction of a price zone (FVG or order block)."""

    BULLISH = "bullish"
    BEARISH = "bearish"


class MarketContext(str, Enum):
    RANGE = "range"
    EXPANSION = "expansion"
    RETRACEMENT = "retracement"
    REVERSAL = "reversal"


def _require_number(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCandleError(
            f"Candle field '{name}' must be numeric, got {type(value).__name__}"
        )
    if math.isnan(value):
        raise InvalidCandleError(f"Candle field '{name}' is NaN")


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar, oldest-first within a series.

    ``time`` is the bar open time as an integer epoch (milliseconds for
    Binance klines).  Construction validates that every price field is
    numeric and that ``high``/``low`` bound the bar.
    """

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def __post_init__(self) -> None:
        if isinstance(self.time, bool) or not isinstance(self.time, int):
            raise InvalidCandleError(
                f"Candle field 'time' must be an integer, got {type(self.time).__name__}"
            )
        for name in ("open", "high", "low", "close", "volume"):
            _require_number(name, getattr(self, name))
        if self.high < max(self.open, self.close, self.low):
            raise InvalidCandleError(
                f"Candle at {self.time}: high {self.high} below open/close/low"
            )
        if self.low > min(self.open, self.close, self.high):
            raise InvalidCandleError(
                f"Candle at {self.time}: low {self.low} above open/close/high"
            )

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def body(self) -> float:
        return abs(self.close - self.open)


@dataclass(frozen=True)
class SwingPoint:
    """A fractal high or low at position *index* in the candle series."""

    index: int
    price: float
    time: int
    kind: SwingKind


@dataclass(frozen=True)
class SwingPoints:
    """Chronological swing highs and lows of one series."""

    highs: tuple[SwingPoint, ...] = ()
    lows: tuple[SwingPoint, ...] = ()


@dataclass(frozen=True)
class TrendResult:
    """Market-structure classification from the most recent swings."""

    direction: TrendDirection
    structure_label: str  # "HHHL", "LHLL" or "RANGE"
    recent_highs: tuple[SwingPoint, ...] = ()
    recent_lows: tuple[SwingPoint, ...] = ()


@dataclass(frozen=True)
class FibLevel:
    percentage: float
    price: float


@dataclass(frozen=True)
class FibonacciLevels:
    """Retracement table between a swing low and a swing high."""

    swing_low: float
    swing_high: float
    levels: tuple[FibLevel, ...]
    zone50: float
    zone618: float
    zone786: float
    is_bullish: bool


@dataclass(frozen=True)
class FVG:
    """An unfilled three-candle imbalance; *index* is the displacement candle."""

    type: ZoneType
    high: float
    low: float
    index: int


@dataclass(frozen=True)
class OrderBlock:
    """Last opposite candle before a strong move; *index* is that candle."""

    type: ZoneType
    high: float
    low: float
    index: int
    fresh: bool

    @property
    def midpoint(self) -> float:
        return (self.high + self.low) / 2


@dataclass(frozen=True)
class OrderBlockRating:
    """Quality score (0-5) of an order block with the criteria it met or missed."""

    order_block: OrderBlock
    score: int
    details: tuple[str, ...]


@dataclass(frozen=True)
class SupportResistance:
    supports: tuple[float, ...] = ()
    resistances: tuple[float, ...] = ()


@dataclass(frozen=True)
class AnalysisReport:
    """Immutable snapshot of one analysis run over a candle series."""

    symbol: Optional[str]
    candle_count: int
    current_price: Optional[float]
    ema_period: int
    ema: tuple[Optional[float], ...]
    ema_last: Optional[float]
    price_vs_ema: Optional[str]  # "above", "below" or None
    swings: SwingPoints
    trend: TrendResult
    context: MarketContext
    fibonacci: Optional[FibonacciLevels]
    fvgs: tuple[FVG, ...]
    order_blocks: tuple[OrderBlock, ...]
    order_block_ratings: tuple[OrderBlockRating, ...]
    support_resistance: SupportResistance

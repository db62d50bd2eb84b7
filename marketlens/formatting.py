"""Presentation helpers — price strings, position sizes, report and ticker dicts.

Keeps string formatting out of the numeric engine so the analysis modules
can be tested on raw numbers.
"""

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from marketlens.analysis.models import AnalysisReport
from marketlens.exchange.binance_client import Ticker
from marketlens.risk.position_sizer import calculate_position_size


@dataclass(frozen=True)
class PositionSizeResult:
    """Position size formatted for alert messages."""

    quantity: str
    risk_amount: str
    risk_percent: str


def _fixed(value: float, places: int, grouping: bool = False) -> str:
    """Fixed-point string with halves rounded away from zero.

    Rounds the exact binary value, so 0.125 becomes "0.13" where
    ``f"{0.125:.2f}"`` would give "0.12".
    """
    exact = Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return f"{exact:,.{places}f}" if grouping else f"{exact:.{places}f}"


def format_percent(value: float) -> str:
    """``2.0 → "2%"``, ``1.5 → "1.5%"``."""
    if float(value).is_integer():
        return f"{int(value)}%"
    return f"{value}%"


def format_price(value: float) -> str:
    """Human-readable price with precision scaled to magnitude.

    >= 1000 → no decimals, >= 1 → up to 2 decimals, otherwise up to 4
    decimals.  Thousands are comma-separated; trailing zeros are dropped.
    """
    if value >= 1000:
        return _fixed(value, 0, grouping=True)
    decimals = 2 if value >= 1 else 4
    text = _fixed(value, decimals, grouping=True)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def size_position(
    capital: float,
    risk_percent: float,
    entry_price: float,
    stop_price: float,
) -> PositionSizeResult:
    """Position size as display strings.

    Quantity uses 4 decimals when >= 1 and 6 decimals below that; risk
    amount is dollar-prefixed with 2 decimals.  A zero stop distance
    yields ``quantity="0"`` and ``risk_amount="0"``.
    """
    size = calculate_position_size(capital, risk_percent, entry_price, stop_price)
    pct = format_percent(risk_percent)
    if size.sl_distance <= 0:
        return PositionSizeResult(quantity="0", risk_amount="0", risk_percent=pct)

    qty = size.quantity
    return PositionSizeResult(
        quantity=_fixed(qty, 4) if qty >= 1 else _fixed(qty, 6),
        risk_amount=f"${_fixed(size.risk_amount, 2)}",
        risk_percent=pct,
    )


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def report_to_dict(report: AnalysisReport) -> dict:
    """Convert a report into plain JSON-serialisable types.

    Enums become their string values and tuples become lists.
    """
    return _jsonable(asdict(report))


def ticker_to_dict(ticker: Ticker) -> dict:
    """Ticker with a display price alongside the raw number."""
    return {
        "symbol": ticker.symbol,
        "price": ticker.price,
        "price_display": format_price(ticker.price),
        "change_percent": ticker.change_percent,
    }

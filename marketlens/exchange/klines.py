"""Kline parsing — raw exchange payloads into validated ``Candle`` objects."""

from typing import Any

from marketlens.analysis.models import Candle, InvalidCandleError

_PRICE_FIELDS = ("open", "high", "low", "close", "volume")


def _to_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidCandleError(f"Kline field '{name}' is not numeric: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidCandleError(
            f"Kline field '{name}' is not numeric: {value!r}"
        ) from None


def _to_time(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidCandleError(f"Kline open time is not an integer: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidCandleError(
            f"Kline open time is not an integer: {value!r}"
        ) from None


def parse_kline(raw: Any) -> Candle:
    """Parse one Binance kline row.

    Binance returns ``[openTime, open, high, low, close, volume, closeTime,
    ...]`` with prices as strings.  Only the first six entries are used.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) < 6:
        raise InvalidCandleError(f"Kline row must be an array of >= 6 items: {raw!r}")
    values = {name: _to_float(name, v) for name, v in zip(_PRICE_FIELDS, raw[1:6])}
    return Candle(time=_to_time(raw[0]), **values)


def candle_from_mapping(data: Any) -> Candle:
    """Build a candle from a ``{time, open, high, low, close, volume}`` dict.

    ``volume`` is optional and defaults to 0.
    """
    if not isinstance(data, dict):
        raise InvalidCandleError(f"Candle must be an object, got {type(data).__name__}")
    missing = [k for k in ("time", "open", "high", "low", "close") if k not in data]
    if missing:
        raise InvalidCandleError(f"Candle missing field(s): {', '.join(missing)}")
    return Candle(
        time=_to_time(data["time"]),
        open=_to_float("open", data["open"]),
        high=_to_float("high", data["high"]),
        low=_to_float("low", data["low"]),
        close=_to_float("close", data["close"]),
        volume=_to_float("volume", data.get("volume", 0.0)),
    )


def parse_klines(payload: Any) -> list[Candle]:
    """Parse a kline payload into candles, oldest-first.

    Accepts either raw Binance rows or candle dicts (as produced by the CLI
    and API).  Raises ``InvalidCandleError`` if *payload* is not a list
    (e.g. an exchange error object) or any row is malformed.
    """
    if not isinstance(payload, list):
        raise InvalidCandleError(
            f"Expected a list of klines, got {type(payload).__name__}: {payload!r}"
        )
    candles: list[Candle] = []
    for row in payload:
        if isinstance(row, dict):
            candles.append(candle_from_mapping(row))
        else:
            candles.append(parse_kline(row))
    return candles

"""Position sizing — pure math, no I/O.

Calculates the quantity to trade from account capital, risk percentage
and the distance between entry and stop-loss.  String formatting of the
result lives in ``marketlens.formatting``.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PositionSize:
    """Raw position-size numbers."""

    quantity: float
    risk_amount: float
    risk_percent: float
    sl_distance: float


def calculate_position_size(
    capital: float,
    risk_percent: float,
    entry_price: float,
    stop_price: float,
) -> PositionSize:
    """Calculate position size in units of the base asset.

    Formula::

        risk_amount = capital × (risk_percent / 100)
        sl_distance = |entry_price - stop_price|
        quantity    = risk_amount / sl_distance

    Args:
        capital: Account capital (e.g. 144.0).
        risk_percent: Percentage of capital to risk (e.g. 2.0 for 2 %).
        entry_price: Planned entry price.
        stop_price: Stop-loss price.

    Returns:
        ``PositionSize``.  A zero stop distance gives ``quantity == 0.0``
        instead of dividing by zero.
    """
    risk_amount = capital * (risk_percent / 100.0)
    sl_distance = abs(entry_price - stop_price)
    if sl_distance <= 0:
        return PositionSize(
            quantity=0.0,
            risk_amount=risk_amount,
            risk_percent=risk_percent,
            sl_distance=0.0,
        )
    return PositionSize(
        quantity=risk_amount / sl_distance,
        risk_amount=risk_amount,
        risk_percent=risk_percent,
        sl_distance=sl_distance,
    )

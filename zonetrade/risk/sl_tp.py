"""Stop-loss and take-profit calculation — pure math, no I/O.

The stop sits beyond the zone boundary by a buffer; the target is a fixed
risk-reward multiple of the stop distance from entry.
"""

from dataclasses import dataclass

from zonetrade.strategy.models import Zone


@dataclass(frozen=True)
class RiskLevels:
    """Computed stop-loss and take-profit for a trade."""

    sl: float
    tp: float
    stop_distance: float


def calculate_sl(direction: str, zone: Zone, buffer: float) -> float:
    """Calculate the stop-loss price.

    - **Buy**:  SL = zone low − buffer
    - **Sell**: SL = zone high + buffer

    Raises:
        ValueError: If *direction* is not ``"buy"`` or ``"sell"``.
    """
    if direction == "buy":
        return zone.low - buffer
    if direction == "sell":
        return zone.high + buffer
    raise ValueError(f"direction must be 'buy' or 'sell', got '{direction}'")


def calculate_tp(entry_price: float, direction: str, sl_price: float, rr_ratio: float) -> float:
    """Calculate the take-profit price at *rr_ratio* × risk from entry."""
    risk = abs(entry_price - sl_price)
    if direction == "buy":
        return entry_price + risk * rr_ratio
    if direction == "sell":
        return entry_price - risk * rr_ratio
    raise ValueError(f"direction must be 'buy' or 'sell', got '{direction}'")


def calculate_zone_risk(
    entry_price: float,
    direction: str,
    zone: Zone,
    buffer: float,
    rr_ratio: float,
    digits: int = 5,
) -> RiskLevels:
    """Stop, target and stop distance for an entry at *zone*.

    ``stop_distance`` is signed so that a stop on the wrong side of entry
    yields a value ≤ 0, which callers treat as unusable.
    """
    sl = calculate_sl(direction, zone, buffer)
    if direction == "buy":
        distance = entry_price - sl
    else:
        distance = sl - entry_price
    tp = calculate_tp(entry_price, direction, sl, rr_ratio)
    return RiskLevels(
        sl=round(sl, digits),
        tp=round(tp, digits),
        stop_distance=distance,
    )

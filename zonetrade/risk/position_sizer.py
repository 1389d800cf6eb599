"""Position sizing — pure math, no I/O.

Calculates the trade volume from account equity, risk percentage, stop
distance and the instrument's tick value, then normalises it to the
broker's volume grid.
"""

import math
from decimal import Decimal


def _step_decimals(step: float) -> int:
    return max(0, -Decimal(str(step)).normalize().as_tuple().exponent)


def floor_to_step(volume: float, step: float) -> float:
    """Round *volume* down to a whole number of *step* increments."""
    if step <= 0:
        raise ValueError(f"volume_step must be positive, got {step}")
    steps = math.floor(volume / step + 1e-9)
    return round(steps * step, _step_decimals(step))


def calculate_volume(
    equity: float,
    risk_pct: float,
    stop_distance: float,
    tick_size: float,
    tick_value: float,
    volume_step: float = 0.01,
    min_volume: float = 0.01,
    max_volume: float = 100.0,
) -> float:
    """Calculate a step-aligned, clamped trade volume.

    Formula::

        risk_amount = equity × (risk_pct / 100)
        stop_ticks  = stop_distance / tick_size
        volume      = risk_amount / (stop_ticks × tick_value)

    The result is floored to *volume_step* and clamped to
    ``[min_volume, max_volume]``.

    Args:
        equity: Current account equity (e.g. 10_000.0).
        risk_pct: Percentage of equity to risk per trade (e.g. 1.0 for 1 %).
        stop_distance: Distance from entry to stop, in price units.
        tick_size: Price increment of one tick.
        tick_value: Account-currency value of one tick for one lot.
        volume_step: Broker volume increment.
        min_volume: Smallest tradable volume.
        max_volume: Largest tradable volume.

    Returns:
        Trade volume in lots.

    Raises:
        ValueError: If any input is non-positive.
    """
    if equity <= 0:
        raise ValueError(f"equity must be positive, got {equity}")
    if risk_pct <= 0:
        raise ValueError(f"risk_pct must be positive, got {risk_pct}")
    if stop_distance <= 0:
        raise ValueError(f"stop_distance must be positive, got {stop_distance}")
    if tick_size <= 0:
        raise ValueError(f"tick_size must be positive, got {tick_size}")
    if tick_value <= 0:
        raise ValueError(f"tick_value must be positive, got {tick_value}")

    risk_amount = equity * (risk_pct / 100.0)
    stop_ticks = stop_distance / tick_size
    raw = risk_amount / (stop_ticks * tick_value)

    volume = floor_to_step(raw, volume_step)
    volume = max(min_volume, min(max_volume, volume))
    return round(volume, _step_decimals(volume_step))


class RiskSizer:
    """Sizes trades for one instrument.

    Args:
        risk_pct: Percentage of equity risked per trade.
    """

    def __init__(self, risk_pct: float) -> None:
        self.risk_pct = risk_pct

    def size(self, equity: float, stop_distance: float, info) -> float:
        """Volume for *stop_distance* given the ``InstrumentInfo`` *info*."""
        return calculate_volume(
            equity=equity,
            risk_pct=self.risk_pct,
            stop_distance=stop_distance,
            tick_size=info.tick_size,
            tick_value=info.tick_value,
            volume_step=info.volume_step,
            min_volume=info.min_volume,
            max_volume=info.max_volume,
        )

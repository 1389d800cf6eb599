"""Stop management — break-even and trailing candidates for open positions.

Every function here only proposes a stop.  A proposal is applied when
``improves_stop`` and ``clears_freeze`` both hold, so stops only ever
move in the position's favour.
"""

from typing import Optional


def risk_reward(direction: str, entry: float, price: float, initial_risk: float) -> float:
    """Favourable excursion from *entry* divided by the original stop distance."""
    if initial_risk <= 0:
        return 0.0
    if direction == "buy":
        return (price - entry) / initial_risk
    return (entry - price) / initial_risk


def break_even_stop(direction: str, entry: float, lock_distance: float) -> float:
    """Stop at entry plus *lock_distance* of locked-in profit."""
    if direction == "buy":
        return entry + lock_distance
    return entry - lock_distance


def trailing_candidate(direction: str, price: float, distance: float) -> Optional[float]:
    """Stop *distance* behind *price*; None when the distance is unusable."""
    if distance <= 0:
        return None
    if direction == "buy":
        return price - distance
    return price + distance


def improves_stop(direction: str, current_stop: Optional[float], proposed: float) -> bool:
    """True if *proposed* is strictly tighter in the position's favour.

    A position without a stop (``None`` or ``0``) accepts any stop.
    """
    if not current_stop:
        return True
    if direction == "buy":
        return proposed > current_stop
    return proposed < current_stop


def clears_freeze(direction: str, price: float, proposed: float, freeze_distance: float) -> bool:
    """True if *proposed* sits on the protective side of *price*, at least
    *freeze_distance* away."""
    if direction == "buy":
        gap = price - proposed
    else:
        gap = proposed - price
    return gap > 0 and gap >= freeze_distance

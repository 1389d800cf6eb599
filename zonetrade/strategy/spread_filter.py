"""Spread filter — rejects entries when the live spread is too wide."""


def is_spread_acceptable(spread_points: float, max_spread_points: float) -> bool:
    """Return ``True`` if the current spread is within the acceptable limit.

    Args:
        spread_points: Current spread in broker points.
        max_spread_points: Ceiling in points; ``0`` disables the check.

    Returns:
        ``True`` if spread ≤ ``max_spread_points``, else ``False``.
    """
    if max_spread_points <= 0:
        return True
    return spread_points <= max_spread_points


def spread_in_points(bid: float, ask: float, point: float) -> float:
    """Compute the spread in points from a bid/ask pair."""
    if point <= 0:
        raise ValueError(f"point must be positive, got {point}")
    return abs(ask - bid) / point

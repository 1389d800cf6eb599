"""Swing detection — strict local extremes in closed-bar history.

A swing high at shift *i* has a high strictly greater than the highs of
the *left* older bars (``i+1 .. i+left``) and the *right* newer bars
(``i-right .. i-1``).  Ties disqualify.  Swing lows mirror this on lows.
"""

from typing import Optional

from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.models import SwingPoint


class SwingDetector:
    """Locates swing highs and lows through a ``BarCursor``.

    Args:
        cursor: Closed-bar accessor.
        left: Number of older bars that must be lower (higher for lows).
        right: Number of newer, closed bars that must be lower.
        lookback: Maximum number of bars ``find_nearest_swings`` scans.
    """

    def __init__(
        self,
        cursor: BarCursor,
        left: int = 5,
        right: int = 5,
        lookback: int = 300,
    ) -> None:
        self._cursor = cursor
        self.left = left
        self.right = right
        self.lookback = lookback

    def _neighbours(self, shift: int) -> Optional[range]:
        # Newer neighbours must all be closed bars.
        if shift - self.right < 1:
            return None
        return range(shift - self.right, shift + self.left + 1)

    def is_swing_high(self, shift: int) -> bool:
        """Return True if the closed bar at *shift* is a strict swing high.

        Raises ``InsufficientDataError`` if older neighbours are missing.
        """
        neighbours = self._neighbours(shift)
        if neighbours is None:
            return False
        high = self._cursor.closed(shift).high
        for j in neighbours:
            if j != shift and self._cursor.closed(j).high >= high:
                return False
        return True

    def is_swing_low(self, shift: int) -> bool:
        """Return True if the closed bar at *shift* is a strict swing low."""
        neighbours = self._neighbours(shift)
        if neighbours is None:
            return False
        low = self._cursor.closed(shift).low
        for j in neighbours:
            if j != shift and self._cursor.closed(j).low <= low:
                return False
        return True

    def find_nearest_swings(
        self, from_shift: int,
    ) -> Optional[tuple[SwingPoint, SwingPoint]]:
        """Return ``(swing_high, swing_low)`` nearest to *from_shift*.

        Scans toward older bars for at most ``lookback`` bars and resolves
        each kind independently.  Returns None if either is not found
        before the window or the available history runs out.
        """
        swing_high: Optional[SwingPoint] = None
        swing_low: Optional[SwingPoint] = None

        for shift in range(from_shift, from_shift + self.lookback):
            try:
                if swing_high is None and self.is_swing_high(shift):
                    swing_high = SwingPoint(
                        index=shift,
                        price=self._cursor.closed(shift).high,
                        kind="high",
                    )
                if swing_low is None and self.is_swing_low(shift):
                    swing_low = SwingPoint(
                        index=shift,
                        price=self._cursor.closed(shift).low,
                        kind="low",
                    )
            except InsufficientDataError:
                break
            if swing_high is not None and swing_low is not None:
                return swing_high, swing_low

        return None

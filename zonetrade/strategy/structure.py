"""Structure-break detection on a newly closed bar."""

import logging
from typing import Optional

from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.models import StructureBreak
from zonetrade.strategy.swings import SwingDetector

logger = logging.getLogger("zonetrade.structure")


class StructureAnalyzer:
    """Reports a close beyond the nearest prior swing extreme.

    Args:
        cursor: Closed-bar accessor.
        swings: Swing detector over the same bars.
        min_break: Minimum distance, in price units, the close must clear
            the swing level by.
    """

    def __init__(
        self,
        cursor: BarCursor,
        swings: SwingDetector,
        min_break: float,
    ) -> None:
        self._cursor = cursor
        self._swings = swings
        self.min_break = min_break

    def detect_break(self, shift: int = 1) -> Optional[StructureBreak]:
        """Evaluate the closed bar at *shift* for a structure break.

        Rules:
            - Both a prior swing high and swing low must resolve.
            - **Bullish**: close − swing high > min_break.
            - **Bearish**: swing low − close > min_break.
            - The bullish check runs first; when both hold, only the
              bullish break is reported.
        """
        try:
            bar = self._cursor.closed(shift)
        except InsufficientDataError:
            return None

        swings = self._swings.find_nearest_swings(shift + 1)
        if swings is None:
            return None
        swing_high, swing_low = swings

        if bar.close - swing_high.price > self.min_break:
            logger.debug(
                "Bullish break at %s: close %.5f > swing high %.5f (bar %d)",
                bar.time, bar.close, swing_high.price, swing_high.index,
            )
            return StructureBreak(
                direction="bullish",
                level=swing_high.price,
                bar_index=shift,
                bar_time=bar.time,
            )
        if swing_low.price - bar.close > self.min_break:
            logger.debug(
                "Bearish break at %s: close %.5f < swing low %.5f (bar %d)",
                bar.time, bar.close, swing_low.price, swing_low.index,
            )
            return StructureBreak(
                direction="bearish",
                level=swing_low.price,
                bar_index=shift,
                bar_time=bar.time,
            )
        return None

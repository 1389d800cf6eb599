"""Trend filter — direction from three closes against a moving average."""

from dataclasses import dataclass
from typing import Literal

from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.indicators import moving_average_at


@dataclass(frozen=True)
class TrendState:
    """Snapshot of the resolved trend direction.

    ``closes`` and ``averages`` are listed for offsets 1, 2, 3.
    """

    direction: Literal["bullish", "bearish", "flat"]
    closes: tuple[float, ...] = ()
    averages: tuple[float, ...] = ()


_FLAT = TrendState(direction="flat")


class TrendFilter:
    """Multi-bar trend gate.

    Args:
        cursor: Bars the trend is read from; may be a different timeframe
            than the zone bars.
        period: Moving-average period.
        method: ``"ema"`` or ``"sma"``.
    """

    OFFSETS = (1, 2, 3)

    def __init__(self, cursor: BarCursor, period: int = 50, method: str = "ema") -> None:
        self._cursor = cursor
        self.period = period
        self.method = method

    def detect(self) -> TrendState:
        """Classify the trend.

        Rules:
            - **Bullish**: all three closes above their average.
            - **Bearish**: all three closes below their average.
            - **Flat**: anything else, including missing data.
        """
        try:
            closes = tuple(self._cursor.closed(s).close for s in self.OFFSETS)
            averages = tuple(
                moving_average_at(self._cursor, s, self.period, self.method)
                for s in self.OFFSETS
            )
        except InsufficientDataError:
            return _FLAT

        if all(c > a for c, a in zip(closes, averages)):
            direction = "bullish"
        elif all(c < a for c, a in zip(closes, averages)):
            direction = "bearish"
        else:
            direction = "flat"
        return TrendState(direction=direction, closes=closes, averages=averages)

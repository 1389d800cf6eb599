"""Entry confirmation — engulfing and pin-bar patterns at a zone.

A confirmation needs price inside the zone (under the active touch test)
and at least one enabled pattern in the trade direction on the last
closed bar.
"""

from typing import Optional

from zonetrade.config import StrategyConfig
from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.models import CandleData, Direction, Zone
from zonetrade.strategy.zones import price_in_zone


def is_bullish_engulfing(prev: CandleData, curr: CandleData) -> bool:
    """Return True if *curr*'s bullish body contains *prev*'s bearish body."""
    return (
        prev.close < prev.open
        and curr.close > curr.open
        and curr.open <= prev.close
        and curr.close >= prev.open
    )


def is_bearish_engulfing(prev: CandleData, curr: CandleData) -> bool:
    """Return True if *curr*'s bearish body contains *prev*'s bullish body."""
    return (
        prev.close > prev.open
        and curr.close < curr.open
        and curr.open >= prev.close
        and curr.close <= prev.open
    )


def is_bullish_pin_bar(
    candle: CandleData,
    wick_ratio: float = 2.0,
    close_pct: float = 33.0,
) -> bool:
    """A long lower wick with the close near the high.

    Criteria: lower wick ≥ *wick_ratio* × body, and the close sits within
    *close_pct* percent of the range from the high.
    """
    total_range = candle.range
    if total_range <= 0:
        return False
    lower_wick = min(candle.open, candle.close) - candle.low
    if lower_wick < wick_ratio * candle.body:
        return False
    return (candle.high - candle.close) <= total_range * close_pct / 100.0


def is_bearish_pin_bar(
    candle: CandleData,
    wick_ratio: float = 2.0,
    close_pct: float = 33.0,
) -> bool:
    """A long upper wick with the close near the low."""
    total_range = candle.range
    if total_range <= 0:
        return False
    upper_wick = candle.high - max(candle.open, candle.close)
    if upper_wick < wick_ratio * candle.body:
        return False
    return (candle.close - candle.low) <= total_range * close_pct / 100.0


class ConfirmationEngine:
    """Evaluates confirmation patterns against a zone.

    Args:
        cursor: Closed-bar accessor.
        config: Strategy parameters (pattern switches and thresholds).
    """

    def __init__(self, cursor: BarCursor, config: StrategyConfig) -> None:
        self._cursor = cursor
        self._config = config

    def pattern(self, direction: Direction, shift: int = 1) -> Optional[str]:
        """Return the name of the first pattern on bar *shift*, or None."""
        cfg = self._config
        try:
            curr = self._cursor.closed(shift)
            prev = self._cursor.closed(shift + 1) if cfg.engulfing_enabled else None
        except InsufficientDataError:
            return None

        if direction == "bullish":
            if prev is not None and is_bullish_engulfing(prev, curr):
                return "bullish engulfing"
            if cfg.pin_bar_enabled and is_bullish_pin_bar(
                curr, cfg.pin_wick_ratio, cfg.pin_close_pct
            ):
                return "bullish pin bar"
        else:
            if prev is not None and is_bearish_engulfing(prev, curr):
                return "bearish engulfing"
            if cfg.pin_bar_enabled and is_bearish_pin_bar(
                curr, cfg.pin_wick_ratio, cfg.pin_close_pct
            ):
                return "bearish pin bar"
        return None

    def confirm(
        self, zone: Zone, direction: Direction, shift: int = 1,
    ) -> Optional[str]:
        """Return the confirming pattern for *zone* on bar *shift*, or None.

        *direction* is the trade direction, which differs from the zone's
        own direction for breaker retests.
        """
        try:
            bar = self._cursor.closed(shift)
        except InsufficientDataError:
            return None
        if not price_in_zone(bar, zone, self._config.touch_mode):
            return None
        return self.pattern(direction, shift)

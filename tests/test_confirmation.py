"""Tests for engulfing / pin-bar confirmation at a zone."""

from datetime import datetime, timezone

from fakes import FILLER, FakeMarket, bars_from, make_bar
from zonetrade.config import StrategyConfig
from zonetrade.strategy.bars import BarCursor
from zonetrade.strategy.confirmation import (
    ConfirmationEngine,
    is_bearish_engulfing,
    is_bearish_pin_bar,
    is_bullish_engulfing,
    is_bullish_pin_bar,
)
from zonetrade.strategy.models import Zone


T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)

BULLISH_PIN = (100.6, 100.9, 99.9, 100.8)
BEARISH_ENGULFED = (100.5, 100.6, 99.9, 100.0)
BULLISH_ENGULFING = (99.9, 100.8, 99.8, 100.7)


def _zone(low: float, high: float, direction: str = "bullish") -> Zone:
    return Zone(
        zone_id=1, direction=direction, anchor_time=T0, anchor_index=3,
        low=low, high=high, created_at=T0,
    )


def _engine(last_two, **overrides) -> ConfirmationEngine:
    rows = [FILLER] * 3 + list(last_two) + [(100.8, 100.8, 100.8, 100.8)]
    cursor = BarCursor(FakeMarket(bars_from(rows)))
    return ConfirmationEngine(cursor, StrategyConfig(**overrides))


class TestEngulfing:
    def test_bullish_engulfing(self):
        prev = make_bar(0, *BEARISH_ENGULFED)
        curr = make_bar(1, *BULLISH_ENGULFING)
        assert is_bullish_engulfing(prev, curr)
        assert not is_bearish_engulfing(prev, curr)

    def test_bullish_engulfing_needs_bearish_previous(self):
        prev = make_bar(0, 100.0, 100.6, 99.9, 100.5)
        curr = make_bar(1, *BULLISH_ENGULFING)
        assert not is_bullish_engulfing(prev, curr)

    def test_body_must_cover_previous_body(self):
        prev = make_bar(0, *BEARISH_ENGULFED)
        curr = make_bar(1, 99.9, 100.6, 99.8, 100.4)
        assert not is_bullish_engulfing(prev, curr)

    def test_bearish_engulfing(self):
        prev = make_bar(0, 100.0, 100.6, 99.9, 100.5)
        curr = make_bar(1, 100.6, 100.7, 99.8, 99.9)
        assert is_bearish_engulfing(prev, curr)


class TestPinBar:
    def test_bullish_pin_bar(self):
        assert is_bullish_pin_bar(make_bar(0, *BULLISH_PIN))

    def test_bearish_pin_bar(self):
        assert is_bearish_pin_bar(make_bar(0, 100.4, 101.1, 100.1, 100.2))

    def test_short_wick_is_not_a_pin(self):
        assert not is_bullish_pin_bar(make_bar(0, 100.2, 100.9, 100.0, 100.8))

    def test_close_far_from_high_is_not_a_pin(self):
        # Long lower wick, but the close sits mid-range.
        assert not is_bullish_pin_bar(make_bar(0, 100.3, 101.0, 99.5, 100.4))

    def test_zero_range_bar(self):
        bar = make_bar(0, 100.0, 100.0, 100.0, 100.0)
        assert not is_bullish_pin_bar(bar)
        assert not is_bearish_pin_bar(bar)

    def test_custom_thresholds(self):
        bar = make_bar(0, *BULLISH_PIN)
        # Lower wick is 3.5 × body.
        assert not is_bullish_pin_bar(bar, wick_ratio=4.0)
        assert not is_bullish_pin_bar(bar, close_pct=5.0)


class TestConfirmationEngine:
    def test_pin_bar_inside_zone_confirms(self):
        engine = _engine([FILLER, BULLISH_PIN])
        assert engine.confirm(_zone(99.0, 100.2), "bullish") == "bullish pin bar"

    def test_engulfing_takes_precedence(self):
        engine = _engine([BEARISH_ENGULFED, BULLISH_ENGULFING])
        assert engine.pattern("bullish") == "bullish engulfing"

    def test_price_outside_zone(self):
        engine = _engine([FILLER, BULLISH_PIN])
        assert engine.confirm(_zone(98.0, 99.5), "bullish") is None

    def test_close_touch_mode(self):
        engine = _engine([FILLER, BULLISH_PIN], touch_mode="close")
        assert engine.confirm(_zone(99.0, 100.2), "bullish") is None
        assert engine.confirm(_zone(100.5, 101.0), "bullish") == "bullish pin bar"

    def test_pattern_must_match_trade_direction(self):
        engine = _engine([FILLER, BULLISH_PIN])
        assert engine.confirm(_zone(99.0, 100.2), "bearish") is None

    def test_disabled_pin_bar(self):
        engine = _engine([FILLER, BULLISH_PIN], pin_bar_enabled=False)
        assert engine.pattern("bullish") is None

    def test_disabled_engulfing(self):
        engine = _engine([BEARISH_ENGULFED, BULLISH_ENGULFING], engulfing_enabled=False)
        assert engine.pattern("bullish") is None

    def test_missing_history(self):
        cursor = BarCursor(FakeMarket(bars_from([BULLISH_PIN])))
        engine = ConfirmationEngine(cursor, StrategyConfig())
        assert engine.confirm(_zone(99.0, 100.2), "bullish") is None

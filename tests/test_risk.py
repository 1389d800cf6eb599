"""Tests for the risk helpers.

Covers position sizing, zone-anchored SL/TP calculation and the
break-even / trailing stop primitives.
"""

from datetime import datetime, timezone

import pytest

from fakes import instrument
from zonetrade.risk.position_sizer import RiskSizer, calculate_volume, floor_to_step
from zonetrade.risk.sl_tp import calculate_sl, calculate_tp, calculate_zone_risk
from zonetrade.risk.trailing_stop import (
    break_even_stop,
    clears_freeze,
    improves_stop,
    risk_reward,
    trailing_candidate,
)
from zonetrade.strategy.models import Zone


T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)


def _zone(low: float, high: float, direction: str = "bullish") -> Zone:
    return Zone(
        zone_id=1, direction=direction, anchor_time=T0, anchor_index=4,
        low=low, high=high, created_at=T0,
    )


# ── Position sizing ──────────────────────────────────────────────────────


class TestPositionSizing:
    """Unit tests for calculate_volume()."""

    def test_position_sizing(self):
        """$10,000 equity, 0.3% risk, 20-tick stop at $1/tick → 1.5 lots."""
        volume = calculate_volume(
            equity=10_000.0,
            risk_pct=0.3,
            stop_distance=0.20,
            tick_size=0.01,
            tick_value=1.0,
        )
        # risk = 30, stop ticks = 20, volume = 30 / 20 = 1.5
        assert volume == pytest.approx(1.5)

    def test_volume_is_floored_to_step(self):
        # 100 / 117 = 0.8547 → 0.85
        volume = calculate_volume(10_000.0, 1.0, 1.17, 0.01, 1.0)
        assert volume == pytest.approx(0.85)

    def test_coarse_volume_step(self):
        # 100 / 64 = 1.5625 → 1.5
        volume = calculate_volume(10_000.0, 1.0, 0.64, 0.01, 1.0, volume_step=0.1)
        assert volume == pytest.approx(1.5)

    def test_clamped_to_minimum(self):
        volume = calculate_volume(10_000.0, 1.0, 1_000.0, 0.01, 1.0, min_volume=0.01)
        assert volume == pytest.approx(0.01)

    def test_clamped_to_maximum(self):
        volume = calculate_volume(10_000.0, 1.0, 0.01, 0.01, 1.0, max_volume=50.0)
        assert volume == pytest.approx(50.0)

    @pytest.mark.parametrize("field", ["equity", "risk_pct", "stop_distance", "tick_size", "tick_value"])
    def test_rejects_non_positive_inputs(self, field):
        kwargs = dict(equity=10_000.0, risk_pct=1.0, stop_distance=0.5, tick_size=0.01, tick_value=1.0)
        kwargs[field] = 0
        with pytest.raises(ValueError, match=field):
            calculate_volume(**kwargs)

    def test_floor_to_step_absorbs_float_error(self):
        # 0.3 / 0.1 is 2.9999999999999996 in binary floating point.
        assert floor_to_step(0.3, 0.1) == 0.3
        assert floor_to_step(0.129, 0.01) == 0.12

    def test_floor_to_step_rejects_zero_step(self):
        with pytest.raises(ValueError, match="volume_step"):
            floor_to_step(1.0, 0.0)

    def test_risk_sizer_uses_instrument_grid(self):
        sizer = RiskSizer(risk_pct=1.0)
        info = instrument(volume_step=0.1, max_volume=5.0)
        assert sizer.size(10_000.0, 1.17, info) == pytest.approx(0.8)
        assert sizer.size(10_000.0, 0.05, info) == pytest.approx(5.0)


# ── SL / TP ──────────────────────────────────────────────────────────────


class TestStopAndTarget:
    def test_buy_stop_below_zone(self):
        assert calculate_sl("buy", _zone(99.7, 101.0), 0.02) == pytest.approx(99.68)

    def test_sell_stop_above_zone(self):
        assert calculate_sl("sell", _zone(99.0, 100.3, "bearish"), 0.02) == pytest.approx(100.32)

    def test_target_is_rr_multiple(self):
        assert calculate_tp(100.0, "buy", 99.0, 2.0) == pytest.approx(102.0)
        assert calculate_tp(100.0, "sell", 101.0, 1.5) == pytest.approx(98.5)

    def test_invalid_direction(self):
        with pytest.raises(ValueError, match="direction"):
            calculate_sl("long", _zone(99.0, 100.0), 0.02)
        with pytest.raises(ValueError, match="direction"):
            calculate_tp(100.0, "short", 101.0, 2.0)

    def test_zone_risk_buy(self):
        levels = calculate_zone_risk(100.85, "buy", _zone(99.7, 101.0), 0.02, 2.0, digits=2)
        assert levels.sl == 99.68
        assert levels.tp == 103.19
        assert levels.stop_distance == pytest.approx(1.17)

    def test_zone_risk_sell(self):
        levels = calculate_zone_risk(99.5, "sell", _zone(99.0, 100.3, "bearish"), 0.02, 2.0, digits=2)
        assert levels.sl == 100.32
        assert levels.tp == 97.86
        assert levels.stop_distance == pytest.approx(0.82)

    def test_stop_on_wrong_side_has_non_positive_distance(self):
        levels = calculate_zone_risk(99.6, "buy", _zone(99.7, 101.0), 0.02, 2.0, digits=2)
        assert levels.stop_distance <= 0


# ── Stop management primitives ───────────────────────────────────────────


class TestStopPrimitives:
    def test_risk_reward(self):
        assert risk_reward("buy", 100.0, 101.0, 1.0) == pytest.approx(1.0)
        assert risk_reward("sell", 100.0, 99.5, 1.0) == pytest.approx(0.5)
        assert risk_reward("buy", 100.0, 99.0, 1.0) == pytest.approx(-1.0)
        assert risk_reward("buy", 100.0, 101.0, 0.0) == 0.0

    def test_break_even_stop(self):
        assert break_even_stop("buy", 100.0, 0.01) == pytest.approx(100.01)
        assert break_even_stop("sell", 100.0, 0.01) == pytest.approx(99.99)

    def test_trailing_candidate(self):
        assert trailing_candidate("buy", 101.6, 0.15) == pytest.approx(101.45)
        assert trailing_candidate("sell", 98.4, 0.15) == pytest.approx(98.55)
        assert trailing_candidate("buy", 101.6, 0.0) is None

    def test_improves_stop_only_tightens(self):
        assert improves_stop("buy", 99.0, 100.0)
        assert not improves_stop("buy", 100.0, 99.5)
        assert not improves_stop("buy", 100.0, 100.0)
        assert improves_stop("sell", 101.0, 100.5)
        assert not improves_stop("sell", 100.5, 101.0)

    def test_missing_stop_accepts_any(self):
        assert improves_stop("buy", None, 99.0)
        assert improves_stop("sell", 0.0, 101.0)

    def test_clears_freeze(self):
        assert clears_freeze("buy", 101.0, 100.5, 0.3)
        assert not clears_freeze("buy", 101.0, 100.5, 0.6)
        assert not clears_freeze("buy", 101.0, 101.2, 0.0)
        assert clears_freeze("sell", 99.0, 99.5, 0.0)
        assert not clears_freeze("sell", 99.0, 98.9, 0.0)

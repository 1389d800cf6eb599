"""Order-block zones — creation, invalidation, touch and breaker promotion.

Zones are created from structure breaks and kept per direction in a
most-recent-first ``ZoneStore``.  A store is owned by one engine instance.
"""

import logging
from collections import deque
from datetime import datetime
from typing import Iterator, Optional

from zonetrade.config import StrategyConfig
from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.indicators import (
    atr_at,
    trailing_average_body,
    trailing_average_volume,
)
from zonetrade.strategy.models import CandleData, Direction, StructureBreak, Zone
from zonetrade.telemetry import DisplayProtocol

logger = logging.getLogger("zonetrade.zones")


class ZoneStore:
    """Bounded per-direction zone collections, newest first.

    Insertion is at the front.  A collection may grow to twice the
    retention count; once it exceeds that, it is truncated back to exactly
    the retention count in one step.

    Args:
        retention: Number of zones kept after a truncation.
    """

    def __init__(self, retention: int = 10) -> None:
        if retention < 1:
            raise ValueError(f"retention must be at least 1, got {retention}")
        self.retention = retention
        self._zones: dict[str, deque[Zone]] = {
            "bullish": deque(),
            "bearish": deque(),
        }
        self._next_id = 1

    def next_id(self) -> int:
        zone_id = self._next_id
        self._next_id += 1
        return zone_id

    def add(self, zone: Zone) -> None:
        zones = self._zones[zone.direction]
        zones.appendleft(zone)
        if len(zones) > 2 * self.retention:
            while len(zones) > self.retention:
                zones.pop()

    def zones(self, direction: Direction) -> Iterator[Zone]:
        """Iterate *direction*'s zones, most recent first."""
        return iter(list(self._zones[direction]))

    def all_zones(self) -> Iterator[Zone]:
        for direction in ("bullish", "bearish"):
            yield from self.zones(direction)

    def __len__(self) -> int:
        return sum(len(z) for z in self._zones.values())

    def count(self, direction: Direction) -> int:
        return len(self._zones[direction])


def price_in_zone(candle: CandleData, zone: Zone, mode: str = "touch") -> bool:
    """Active price test for a zone.

    ``"touch"``: the candle's high/low range intersects the zone.
    ``"close"``: the candle closes inside the zone.
    """
    if mode == "close":
        return zone.low <= candle.close <= zone.high
    return candle.low <= zone.high and candle.high >= zone.low


class ZoneManager:
    """Maintains the zone lifecycle against newly closed bars.

    Args:
        cursor: Closed-bar accessor.
        store: The engine's ``ZoneStore``.
        config: Strategy parameters.
        display: Receiver for zone notifications.
    """

    def __init__(
        self,
        cursor: BarCursor,
        store: ZoneStore,
        config: StrategyConfig,
        display: Optional[DisplayProtocol] = None,
    ) -> None:
        self._cursor = cursor
        self._store = store
        self._config = config
        self._display = display

    # ── Notifications ────────────────────────────────────────────────────

    def _notify(self, event: str, zone: Zone) -> None:
        if self._display is None:
            return
        try:
            getattr(self._display, event)(zone)
        except Exception as exc:
            logger.warning("Display %s failed for zone #%d: %s", event, zone.zone_id, exc)

    # ── Creation ─────────────────────────────────────────────────────────

    def find_order_block(self, brk: StructureBreak) -> Optional[int]:
        """Return the shift of the order-block candle for *brk*, or None.

        Walks from the bar before the break toward older bars; each
        opposite-coloured candle replaces the previous candidate, so the
        oldest match inside the window wins.
        """
        candidate: Optional[int] = None
        start = brk.bar_index + 1
        for shift in range(start, start + self._config.ob_lookback):
            try:
                candle = self._cursor.closed(shift)
            except InsufficientDataError:
                break
            if brk.direction == "bullish" and candle.is_bearish:
                candidate = shift
            elif brk.direction == "bearish" and candle.is_bullish:
                candidate = shift
        return candidate

    def _body_ok(self, shift: int, candle: CandleData) -> bool:
        cfg = self._config
        if cfg.body_filter_mode == "average":
            reference = trailing_average_body(self._cursor, shift, cfg.body_avg_period)
            if reference <= 0:
                return False
            return candle.body > cfg.body_avg_ratio * reference
        reference = atr_at(self._cursor, shift, cfg.atr_period)
        return candle.body > cfg.body_atr_ratio * reference

    def _volume_ok(self, shift: int, candle: CandleData) -> bool:
        cfg = self._config
        if not cfg.volume_filter_enabled:
            return True
        reference = trailing_average_volume(self._cursor, shift, cfg.volume_avg_period)
        if reference <= 0:
            return False
        return candle.volume > cfg.volume_spike_factor * reference

    def _impulse_ok(self, brk: StructureBreak, ob_shift: int) -> bool:
        atr = atr_at(self._cursor, brk.bar_index, self._config.atr_period)
        impulse = max(
            self._cursor.closed(s).range
            for s in range(brk.bar_index, ob_shift)
        )
        return impulse > self._config.impulse_atr_ratio * atr

    def on_structure_break(self, brk: StructureBreak) -> Optional[Zone]:
        """Create a zone from *brk* if its order block qualifies."""
        ob_shift = self.find_order_block(brk)
        if ob_shift is None:
            logger.debug("No order block for %s break at %s", brk.direction, brk.bar_time)
            return None

        candle = self._cursor.closed(ob_shift)
        try:
            if not self._body_ok(ob_shift, candle):
                logger.debug("Order block at %s rejected: weak body", candle.time)
                return None
            if not self._volume_ok(ob_shift, candle):
                logger.debug("Order block at %s rejected: no volume spike", candle.time)
                return None
            if not self._impulse_ok(brk, ob_shift):
                logger.debug("Order block at %s rejected: weak impulse", candle.time)
                return None
        except InsufficientDataError as exc:
            logger.debug("Order block at %s unresolved: %s", candle.time, exc)
            return None

        if self._config.zone_range_mode == "wick":
            low, high = candle.low, candle.high
        else:
            low, high = min(candle.open, candle.close), max(candle.open, candle.close)

        zone = Zone(
            zone_id=self._store.next_id(),
            direction=brk.direction,
            anchor_time=candle.time,
            anchor_index=ob_shift,
            low=low,
            high=high,
            created_at=brk.bar_time,
        )
        self._store.add(zone)
        self._notify("zone_created", zone)
        return zone

    # ── Per-bar maintenance ──────────────────────────────────────────────

    def _invalidate(self, zone: Zone, when: datetime) -> None:
        zone.valid = False
        zone.invalidated_at = when
        zone.breaker_ready = self._config.breaker_enabled
        self._notify("zone_invalidated", zone)

    def update(self, shift: int = 1) -> None:
        """Apply invalidation then touch detection for the closed bar at *shift*."""
        try:
            bar = self._cursor.closed(shift)
        except InsufficientDataError:
            return

        for zone in self._store.zones("bullish"):
            if zone.valid and bar.close < zone.low:
                self._invalidate(zone, bar.time)
        for zone in self._store.zones("bearish"):
            if zone.valid and bar.close > zone.high:
                self._invalidate(zone, bar.time)

        for zone in self._store.all_zones():
            if zone.valid and not zone.touched and price_in_zone(
                bar, zone, self._config.touch_mode
            ):
                zone.touched = True
                self._notify("zone_touched", zone)

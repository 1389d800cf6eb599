"""Entry gate — one trade decision per newly closed bar.

Checks run in strict veto order; the first failing check ends the
evaluation for the bar:

    1. Session window open.
    2. News blackout clear.
    3. Spread within the ceiling.
    4. Trend resolves bullish or bearish.

Then the trend direction's zones are scanned most-recent-first for a
valid, touched, confirmed zone whose stop clears the broker minimum.
Breaker retests are only considered when that scan finds nothing.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from zonetrade.broker.models import BarSource, InstrumentInfo, Quote
from zonetrade.config import StrategyConfig
from zonetrade.risk.position_sizer import RiskSizer
from zonetrade.risk.sl_tp import RiskLevels, calculate_zone_risk
from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.confirmation import ConfirmationEngine
from zonetrade.strategy.models import (
    Direction,
    EntrySignal,
    Zone,
    opposite,
    pip_size,
    trade_direction,
)
from zonetrade.strategy.session_filter import ScheduleGate
from zonetrade.strategy.spread_filter import is_spread_acceptable, spread_in_points
from zonetrade.strategy.trend import TrendFilter
from zonetrade.strategy.zones import ZoneStore

logger = logging.getLogger("zonetrade.entry")


@dataclass(frozen=True)
class TradeSetup:
    """A sized entry ready to be sent to the gateway."""

    signal: EntrySignal
    levels: RiskLevels
    volume: float


class EntryGate:
    """Orchestrates filters, zone scan and sizing into a single decision.

    Args:
        cursor: Closed-bar accessor for the zone timeframe.
        source: Bar source (quote, instrument info, equity).
        store: The engine's ``ZoneStore``.
        confirmation: Pattern confirmation engine.
        trend: Trend filter.
        schedule: Object with ``is_session_open(now)`` and
            ``is_news_blackout(now)``.
        sizer: Risk sizer.
        config: Strategy parameters.
    """

    def __init__(
        self,
        cursor: BarCursor,
        source: BarSource,
        store: ZoneStore,
        confirmation: ConfirmationEngine,
        trend: TrendFilter,
        schedule: ScheduleGate,
        sizer: RiskSizer,
        config: StrategyConfig,
    ) -> None:
        self._cursor = cursor
        self._source = source
        self._store = store
        self._confirmation = confirmation
        self._trend = trend
        self._schedule = schedule
        self._sizer = sizer
        self._config = config
        self.last_insight: dict = {}

    def _skip(self, result: str) -> None:
        self.last_insight["result"] = result
        logger.debug("Entry skipped: %s", result)

    def evaluate(self, now: datetime) -> Optional[TradeSetup]:
        """Return the trade setup for the last closed bar, or None."""
        checks = {
            "in_session": False,
            "news_clear": False,
            "spread_acceptable": False,
            "trend_detected": False,
            "zone_confirmed": False,
            "risk_calculated": False,
        }
        self.last_insight = {"checks": checks, "evaluated_at": now.isoformat()}

        # 1 ── Session
        if not self._schedule.is_session_open(now):
            self._skip("outside_session")
            return None
        checks["in_session"] = True

        # 2 ── News
        if self._schedule.is_news_blackout(now):
            self._skip("news_blackout")
            return None
        checks["news_clear"] = True

        # 3 ── Spread
        quote = self._source.quote()
        info = self._source.instrument_info()
        spread = quote.spread_points
        if spread <= 0 and quote.ask > 0 and quote.bid > 0:
            spread = spread_in_points(quote.bid, quote.ask, info.point)
        self.last_insight["spread_points"] = spread
        if not is_spread_acceptable(spread, self._config.max_spread_points):
            self._skip("spread_too_wide")
            return None
        checks["spread_acceptable"] = True

        # 4 ── Trend
        trend = self._trend.detect()
        self.last_insight["trend"] = trend.direction
        if trend.direction == "flat":
            self._skip("no_trend")
            return None
        checks["trend_detected"] = True
        direction: Direction = trend.direction

        # 5 ── Zone scan, then breaker retests
        try:
            setup = self._scan(direction, quote, info, breaker=False)
            if setup is None and self._config.breaker_enabled:
                setup = self._scan(direction, quote, info, breaker=True)
        except ValueError as exc:
            # Covers InsufficientDataError and invalid sizing inputs.
            logger.warning("Entry evaluation aborted: %s", exc)
            self._skip("invalid_market_data")
            return None

        if setup is None:
            if not checks["zone_confirmed"]:
                self._skip("no_confirmed_zone")
            else:
                self._skip("stop_too_close")
            return None

        checks["risk_calculated"] = True
        self.last_insight["result"] = "signal_found"
        self.last_insight["signal"] = {
            "direction": setup.signal.direction,
            "zone_id": setup.signal.zone.zone_id,
            "breaker": setup.signal.breaker,
            "sl": setup.levels.sl,
            "tp": setup.levels.tp,
            "volume": setup.volume,
        }
        return setup

    def _candidates(self, direction: Direction, breaker: bool) -> Iterator[Zone]:
        single_use = self._config.single_use_zones
        if not breaker:
            for zone in self._store.zones(direction):
                if zone.valid and zone.touched and not (single_use and zone.traded):
                    yield zone
        else:
            # An invalidated zone of the other side flips role.
            for zone in self._store.zones(opposite(direction)):
                if (
                    not zone.valid
                    and zone.breaker_ready
                    and not (single_use and zone.breaker_traded)
                ):
                    yield zone

    def _scan(
        self,
        direction: Direction,
        quote: Quote,
        info: InstrumentInfo,
        breaker: bool,
    ) -> Optional[TradeSetup]:
        side = trade_direction(direction)
        entry_price = quote.ask if side == "buy" else quote.bid
        if entry_price <= 0:
            raise InsufficientDataError("no live quote")
        buffer = self._config.stop_buffer_pips * pip_size(info.point, info.digits)

        for zone in self._candidates(direction, breaker):
            pattern = self._confirmation.confirm(zone, direction)
            if pattern is None:
                continue
            self.last_insight["checks"]["zone_confirmed"] = True

            levels = calculate_zone_risk(
                entry_price, side, zone, buffer, self._config.rr_ratio, info.digits,
            )
            if levels.stop_distance <= 0 or levels.stop_distance < info.min_stop_distance:
                logger.debug(
                    "Zone #%d skipped: stop distance %.5f below minimum %.5f",
                    zone.zone_id, levels.stop_distance, info.min_stop_distance,
                )
                continue

            volume = self._sizer.size(
                self._source.account_equity(), levels.stop_distance, info,
            )
            kind = "breaker" if breaker else "zone"
            signal = EntrySignal(
                direction=side,
                entry_price=entry_price,
                zone=zone,
                candle_time=self._cursor.closed(1).time,
                reason=f"{pattern} at {direction} {kind} #{zone.zone_id}",
                breaker=breaker,
            )
            return TradeSetup(signal=signal, levels=levels, volume=volume)
        return None

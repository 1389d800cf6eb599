"""ZoneTrade — strategy engine (event routing).

Connects structure detection, zone maintenance, entry gating and position
management for one instrument.  The host delivers ticks; the engine detects
newly closed bars itself.

    on_tick(now)
      └─ new closed bar? → on_bar(now)
      │     zone maintenance → structure break → zone creation
      │     → entry gate → at most one order
      └─ lifecycle.manage()  (break-even / partial / trailing)
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from zonetrade.broker.models import BarSource, ExecutionGateway
from zonetrade.config import StrategyConfig
from zonetrade.risk.lifecycle import TradeLifecycleManager
from zonetrade.risk.position_sizer import RiskSizer
from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.confirmation import ConfirmationEngine
from zonetrade.strategy.entry_gate import EntryGate
from zonetrade.strategy.models import pip_size
from zonetrade.strategy.session_filter import ScheduleGate
from zonetrade.strategy.structure import StructureAnalyzer
from zonetrade.strategy.swings import SwingDetector
from zonetrade.strategy.trend import TrendFilter
from zonetrade.strategy.zones import ZoneManager, ZoneStore
from zonetrade.telemetry import DisplayProtocol, LogDisplay

logger = logging.getLogger("zonetrade")


class StrategyEngine:
    """Owns the zone store and position tracking for one strategy instance.

    Args:
        config: Validated strategy parameters.
        source: Bar source for the trading timeframe (bars, quote,
            instrument info, equity).
        gateway: Execution gateway.
        display: Zone notification sink.  Defaults to ``LogDisplay``.
        schedule: Session/news gate.  Defaults to a ``ScheduleGate`` built
            from *config*.
        trend_source: Bar source for the trend filter when it runs on a
            different timeframe.
    """

    def __init__(
        self,
        config: StrategyConfig,
        source: BarSource,
        gateway: ExecutionGateway,
        display: Optional[DisplayProtocol] = None,
        schedule: Optional[ScheduleGate] = None,
        trend_source: Optional[BarSource] = None,
    ) -> None:
        self._config = config
        self._source = source
        self._gateway = gateway
        self._display = display if display is not None else LogDisplay()
        self._schedule = schedule if schedule is not None else ScheduleGate.from_config(config)

        self.cursor = BarCursor(source)
        trend_cursor = BarCursor(trend_source) if trend_source is not None else self.cursor

        info = source.instrument_info()
        min_break = config.min_break_pips * pip_size(info.point, info.digits)

        self.store = ZoneStore(config.zone_retention)
        self.swings = SwingDetector(
            self.cursor, config.swing_left, config.swing_right, config.swing_lookback,
        )
        self.structure = StructureAnalyzer(self.cursor, self.swings, min_break)
        self.zones = ZoneManager(self.cursor, self.store, config, self._display)
        self.confirmation = ConfirmationEngine(self.cursor, config)
        self.trend = TrendFilter(trend_cursor, config.trend_ma_period, config.trend_ma_method)
        self.entry_gate = EntryGate(
            cursor=self.cursor,
            source=source,
            store=self.store,
            confirmation=self.confirmation,
            trend=self.trend,
            schedule=self._schedule,
            sizer=RiskSizer(config.risk_percent),
            config=config,
        )
        self.lifecycle = TradeLifecycleManager(gateway, source, self.cursor, config)
        self._last_bar_time: Optional[datetime] = None

    @property
    def strategy_id(self) -> str:
        return self._config.strategy_id

    # ── Events ───────────────────────────────────────────────────────────

    def on_tick(self, now: Optional[datetime] = None) -> dict:
        """Handle one tick.

        Runs ``on_bar`` first when a new bar has closed since the last
        call, then manages open positions.

        Returns:
            ``{"bar": <on_bar result or None>, "positions": [<actions>]}``
        """
        if now is None:
            now = datetime.now(timezone.utc)

        bar_result = None
        if self._new_bar_closed():
            bar_result = self.on_bar(now)

        return {"bar": bar_result, "positions": self.lifecycle.manage()}

    def _new_bar_closed(self) -> bool:
        try:
            bar_time = self.cursor.closed(1).time
        except InsufficientDataError:
            return False
        if bar_time == self._last_bar_time:
            return False
        self._last_bar_time = bar_time
        return True

    def on_bar(self, now: datetime) -> dict:
        """Process the bar that just closed.

        Returns a dict describing the action taken:

        - ``{"action": "skipped", "reason": "..."}``
        - ``{"action": "order_failed", ...}``
        - ``{"action": "order_placed", ...}``
        """
        # 1 ── Zone maintenance on existing zones
        self.zones.update(1)

        # 2 ── Structure break → zone creation
        brk = self.structure.detect_break(1)
        created = None
        if brk is not None:
            created = self.zones.on_structure_break(brk)

        # 3 ── Open-position cap
        cap = self._config.max_open_positions
        if cap > 0:
            open_count = len(self._gateway.list_open_positions(self.strategy_id))
            if open_count >= cap:
                self._debug(f"Max positions ({cap}) reached")
                return self._skipped("max_open_positions", brk, created)

        # 4 ── Entry decision
        setup = self.entry_gate.evaluate(now)
        if setup is None:
            reason = self.entry_gate.last_insight.get("result", "no_signal")
            self._debug(f"No entry: {reason}")
            return self._skipped(reason, brk, created)

        # 5 ── Order
        result = self.lifecycle.open_trade(setup.signal, setup.levels, setup.volume)
        if result["action"] == "order_placed" and self._config.single_use_zones:
            if setup.signal.breaker:
                setup.signal.zone.breaker_traded = True
            else:
                setup.signal.zone.traded = True
        return result

    # ── Helpers ──────────────────────────────────────────────────────────

    def _debug(self, message: str) -> None:
        try:
            self._display.debug(message)
        except Exception as exc:
            logger.warning("Display debug failed: %s", exc)

    @staticmethod
    def _skipped(reason: str, brk, created) -> dict:
        result = {"action": "skipped", "reason": reason}
        if brk is not None:
            result["structure_break"] = brk.direction
        if created is not None:
            result["zone_created"] = created.zone_id
        return result

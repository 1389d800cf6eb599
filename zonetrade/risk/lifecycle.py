"""Trade lifecycle — order issuance and per-tick position management.

Per open position, three independent transitions are evaluated every
tick, each gated by its own risk-reward threshold:

  - Break-even: move the stop to entry plus a small lock.
  - Partial close: close a share of the volume, once per position.
  - Trailing: follow price by ATR × multiplier or a fixed distance.

Break-even and trailing only ever tighten the stop.  The partial-close
marker is owned here, not by the gateway.  It is kept for every id
seen during the run and lost on restart.
"""

import logging
from typing import Optional

from zonetrade.broker.models import (
    BarSource,
    ExecutionGateway,
    InstrumentInfo,
    Position,
    Quote,
)
from zonetrade.config import StrategyConfig
from zonetrade.risk.position_sizer import floor_to_step
from zonetrade.risk.sl_tp import RiskLevels, calculate_tp
from zonetrade.risk.trailing_stop import (
    break_even_stop,
    clears_freeze,
    improves_stop,
    risk_reward,
    trailing_candidate,
)
from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.indicators import atr_at
from zonetrade.strategy.models import EntrySignal, pip_size

logger = logging.getLogger("zonetrade.lifecycle")


class TradeLifecycleManager:
    """Issues entries and advances stop/partial state for open positions.

    Args:
        gateway: Execution gateway.
        source: Bar source providing the live quote and instrument info.
        cursor: Closed-bar accessor for the trailing ATR.
        config: Strategy parameters.
    """

    def __init__(
        self,
        gateway: ExecutionGateway,
        source: BarSource,
        cursor: BarCursor,
        config: StrategyConfig,
    ) -> None:
        self._gateway = gateway
        self._source = source
        self._cursor = cursor
        self._config = config
        self._partial_done: set[str] = set()
        self._initial_risk: dict[str, float] = {}

    # ── Queries ──────────────────────────────────────────────────────────

    def partial_close_done(self, position_id: str) -> bool:
        return position_id in self._partial_done

    def initial_risk(self, position_id: str) -> Optional[float]:
        return self._initial_risk.get(position_id)

    # ── Entry ────────────────────────────────────────────────────────────

    def open_trade(self, signal: EntrySignal, levels: RiskLevels, volume: float) -> dict:
        """Place a market order for *signal*.

        On fill, the target is optionally recomputed from the fill price so
        the configured risk-reward holds exactly.  No retry on failure.
        """
        result = self._gateway.place_market_order(
            signal.direction, volume, levels.sl, levels.tp,
        )
        if not result.filled:
            logger.warning(
                "Order %s %.2f failed: %s",
                signal.direction, volume, result.failure_reason,
            )
            return {
                "action": "order_failed",
                "direction": signal.direction,
                "reason": result.failure_reason,
            }

        fill = result.filled_price
        target = levels.tp
        risk = abs(fill - levels.sl)
        if result.position_id is not None and risk > 0:
            self._initial_risk[result.position_id] = risk

            if self._config.recompute_target_on_fill:
                digits = self._source.instrument_info().digits
                new_target = round(
                    calculate_tp(fill, signal.direction, levels.sl, self._config.rr_ratio),
                    digits,
                )
                if new_target != target:
                    if self._gateway.modify_stop(result.position_id, levels.sl, new_target):
                        target = new_target
                    else:
                        logger.warning(
                            "Target adjustment to %.5f rejected for position %s",
                            new_target, result.position_id,
                        )

        logger.info(
            "Opened %s %.2f @ %.5f sl=%.5f tp=%.5f (%s)",
            signal.direction, volume, fill, levels.sl, target, signal.reason,
        )
        return {
            "action": "order_placed",
            "position_id": result.position_id,
            "direction": signal.direction,
            "volume": volume,
            "entry": fill,
            "sl": levels.sl,
            "tp": target,
            "zone_id": signal.zone.zone_id,
            "breaker": signal.breaker,
            "reason": signal.reason,
        }

    # ── Per-tick management ──────────────────────────────────────────────

    def manage(self) -> list[dict]:
        """Evaluate break-even, partial close and trailing for every open position."""
        positions = self._gateway.list_open_positions(self._config.strategy_id)
        # Markers outlive gaps in the listing; they are never pruned.
        if not positions:
            return []

        quote = self._source.quote()
        info = self._source.instrument_info()
        actions: list[dict] = []
        for position in positions:
            actions.extend(self._manage_position(position, quote, info))
        return actions

    def _risk_for(self, position: Position) -> Optional[float]:
        risk = self._initial_risk.get(position.position_id)
        if risk is not None:
            return risk
        # Untracked position: only a stop still on the losing side gives
        # the original distance.
        if not position.stop:
            return None
        if position.direction == "buy":
            risk = position.entry_price - position.stop
        else:
            risk = position.stop - position.entry_price
        if risk <= 0:
            return None
        self._initial_risk[position.position_id] = risk
        return risk

    def _manage_position(
        self, position: Position, quote: Quote, info: InstrumentInfo,
    ) -> list[dict]:
        cfg = self._config
        risk = self._risk_for(position)
        if risk is None:
            return []

        direction = position.direction
        price = quote.bid if direction == "buy" else quote.ask
        if price <= 0:
            return []
        rr = risk_reward(direction, position.entry_price, price, risk)
        pip = pip_size(info.point, info.digits)
        stop = position.stop
        actions: list[dict] = []

        if cfg.break_even_enabled and rr >= cfg.break_even_trigger_rr:
            proposed = round(
                break_even_stop(direction, position.entry_price, cfg.break_even_lock_pips * pip),
                info.digits,
            )
            if self._apply_stop(position, stop, proposed, price, info):
                stop = proposed
                actions.append(self._stop_action("break_even", position, proposed, rr))

        if (
            cfg.partial_close_enabled
            and rr >= cfg.partial_close_rr
            and position.position_id not in self._partial_done
        ):
            closed = self._partial_close(position, info)
            if closed is not None:
                actions.append({
                    "action": "partial_close",
                    "position_id": position.position_id,
                    "volume": closed,
                    "rr": round(rr, 2),
                })

        if cfg.trailing_enabled and rr >= cfg.trailing_start_rr:
            distance = self._trailing_distance(pip)
            if distance is not None:
                candidate = trailing_candidate(direction, price, distance)
                if candidate is not None:
                    candidate = round(candidate, info.digits)
                    if self._apply_stop(position, stop, candidate, price, info):
                        stop = candidate
                        actions.append(self._stop_action("trailing", position, candidate, rr))

        return actions

    def _trailing_distance(self, pip: float) -> Optional[float]:
        cfg = self._config
        if cfg.trailing_mode == "fixed":
            return cfg.trailing_distance_pips * pip
        try:
            return atr_at(self._cursor, 1, cfg.atr_period) * cfg.trailing_atr_multiplier
        except InsufficientDataError:
            return None

    def _apply_stop(
        self,
        position: Position,
        current_stop: float,
        proposed: float,
        price: float,
        info: InstrumentInfo,
    ) -> bool:
        if not improves_stop(position.direction, current_stop, proposed):
            return False
        if not clears_freeze(position.direction, price, proposed, info.freeze_distance):
            return False
        if not self._gateway.modify_stop(position.position_id, proposed, position.target):
            logger.warning(
                "Stop modification to %.5f rejected for position %s",
                proposed, position.position_id,
            )
            return False
        return True

    def _partial_close(self, position: Position, info: InstrumentInfo) -> Optional[float]:
        volume = position.volume
        to_close = floor_to_step(volume * self._config.partial_close_pct / 100.0, info.volume_step)
        if volume - to_close < info.min_volume - 1e-9:
            to_close = floor_to_step(volume - info.min_volume, info.volume_step)
        if to_close < info.min_volume - 1e-9:
            # Too small to split; nothing will change on later ticks.
            logger.debug(
                "Position %s volume %.2f too small for a partial close",
                position.position_id, volume,
            )
            self._partial_done.add(position.position_id)
            return None

        if not self._gateway.partial_close(position.position_id, to_close):
            logger.warning(
                "Partial close of %.2f rejected for position %s",
                to_close, position.position_id,
            )
            return None

        self._partial_done.add(position.position_id)
        logger.info("Partially closed %.2f of position %s", to_close, position.position_id)
        return to_close

    @staticmethod
    def _stop_action(kind: str, position: Position, stop: float, rr: float) -> dict:
        logger.info("%s stop for position %s moved to %.5f", kind, position.position_id, stop)
        return {
            "action": kind,
            "position_id": position.position_id,
            "stop": stop,
            "rr": round(rr, 2),
        }

"""Broker data models — typed representations of quotes, instrument
metadata, orders and positions, plus the collaborator interfaces the
strategy core talks to.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from zonetrade.strategy.models import CandleData


@dataclass(frozen=True)
class Quote:
    """Current bid/ask snapshot."""

    bid: float
    ask: float
    spread_points: float


@dataclass(frozen=True)
class InstrumentInfo:
    """Static trading constraints of the instrument.

    ``min_stop_distance`` and ``freeze_distance`` are expressed in price
    units, not points.
    """

    point: float
    digits: int
    min_volume: float
    max_volume: float
    volume_step: float
    tick_value: float
    tick_size: float
    min_stop_distance: float = 0.0
    freeze_distance: float = 0.0


@dataclass(frozen=True)
class OrderResult:
    """Response from placing a market order.

    Exactly one of ``filled_price`` / ``failure_reason`` is meaningful.
    """

    position_id: Optional[str] = None
    filled_price: Optional[float] = None
    failure_reason: Optional[str] = None

    @property
    def filled(self) -> bool:
        return self.failure_reason is None and self.filled_price is not None


@dataclass(frozen=True)
class Position:
    """An open position as reported by the execution gateway."""

    position_id: str
    direction: str  # "buy" or "sell"
    entry_price: float
    stop: float
    target: float
    volume: float
    opened_at: Optional[datetime] = None


@runtime_checkable
class BarSource(Protocol):
    """Market data for a single instrument and timeframe."""

    def bar(self, index: int) -> Optional[CandleData]:
        """Return the bar at recency *index* (0 = forming), or None."""
        ...

    def bar_count(self) -> int:
        """Number of bars available, forming bar included."""
        ...

    def quote(self) -> Quote:
        ...

    def instrument_info(self) -> InstrumentInfo:
        ...

    def account_equity(self) -> float:
        ...


@runtime_checkable
class ExecutionGateway(Protocol):
    """Order placement and position management."""

    def place_market_order(
        self, direction: str, volume: float, stop: float, target: float,
    ) -> OrderResult:
        ...

    def modify_stop(self, position_id: str, stop: float, target: float) -> bool:
        ...

    def partial_close(self, position_id: str, volume: float) -> bool:
        ...

    def list_open_positions(self, strategy_id: str) -> list[Position]:
        ...

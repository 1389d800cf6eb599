"""Strategy data models — typed representations for bars, structure and zones."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional


Direction = Literal["bullish", "bearish"]


@dataclass(frozen=True)
class CandleData:
    """A single candlestick bar for strategy consumption."""

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass(frozen=True)
class SwingPoint:
    """A local price extreme confirmed by bars on both sides."""

    index: int
    price: float
    kind: Literal["high", "low"]


@dataclass(frozen=True)
class StructureBreak:
    """A close beyond the nearest swing extreme by more than the minimum distance."""

    direction: Direction
    level: float
    bar_index: int
    bar_time: datetime


@dataclass
class Zone:
    """An order-block zone derived from a structure break.

    ``valid`` flips to False exactly once; ``touched`` only while valid;
    ``breaker_ready`` only at the moment of invalidation.
    """

    zone_id: int
    direction: Direction
    anchor_time: datetime
    anchor_index: int
    low: float
    high: float
    created_at: datetime
    valid: bool = True
    touched: bool = False
    breaker_ready: bool = False
    invalidated_at: Optional[datetime] = None
    traded: bool = False
    breaker_traded: bool = False

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError(
                f"zone low {self.low} is above zone high {self.high}"
            )


@dataclass(frozen=True)
class EntrySignal:
    """A confirmed zone entry, before sizing."""

    direction: str  # "buy" or "sell"
    entry_price: float
    zone: Zone
    candle_time: datetime
    reason: str
    breaker: bool = False


# ── Instrument metadata ──────────────────────────────────────────────────


def pip_size(point: float, digits: int) -> float:
    """Return the pip unit for an instrument.

    Brokers quoting 3 or 5 decimals use a fractional point, so one pip is
    ten points there.
    """
    if digits in (3, 5):
        return point * 10
    return point


def trade_direction(direction: Direction) -> str:
    """Map a zone/trend direction to an order side."""
    return "buy" if direction == "bullish" else "sell"


def opposite(direction: Direction) -> Direction:
    return "bearish" if direction == "bullish" else "bullish"

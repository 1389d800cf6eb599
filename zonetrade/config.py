"""ZoneTrade — strategy configuration.

Loads .env variables into a typed, immutable config object.
Validates every parameter on construction so a malformed schedule or mode
stops the engine before it trades.
"""

import os
from dataclasses import dataclass, fields
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from zonetrade.strategy.session_filter import TimeWindow, parse_windows


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

_MODES = {
    "body_filter_mode": ("atr", "average"),
    "zone_range_mode": ("body", "wick"),
    "touch_mode": ("touch", "close"),
    "trend_ma_method": ("ema", "sma"),
    "trailing_mode": ("atr", "fixed"),
}

_POSITIVE = (
    "swing_lookback",
    "zone_retention",
    "ob_lookback",
    "atr_period",
    "body_avg_period",
    "volume_avg_period",
    "trend_ma_period",
    "risk_percent",
    "rr_ratio",
    "partial_close_pct",
)

_NON_NEGATIVE = (
    "swing_left",
    "swing_right",
    "min_break_pips",
    "body_atr_ratio",
    "body_avg_ratio",
    "volume_spike_factor",
    "impulse_atr_ratio",
    "pin_wick_ratio",
    "pin_close_pct",
    "stop_buffer_pips",
    "break_even_trigger_rr",
    "break_even_lock_pips",
    "partial_close_rr",
    "trailing_start_rr",
    "trailing_atr_multiplier",
    "trailing_distance_pips",
    "max_spread_points",
    "max_open_positions",
)


@dataclass(frozen=True)
class StrategyConfig:
    """Typed strategy parameters, fixed for the run."""

    strategy_id: str = "zonetrade"

    # Structure
    swing_left: int = 5
    swing_right: int = 5
    swing_lookback: int = 300
    min_break_pips: float = 5.0

    # Zones
    zone_retention: int = 10
    ob_lookback: int = 50
    atr_period: int = 14
    body_filter_mode: str = "atr"  # "atr" or "average"
    body_atr_ratio: float = 0.5
    body_avg_ratio: float = 1.2
    body_avg_period: int = 20
    volume_filter_enabled: bool = False
    volume_spike_factor: float = 1.5
    volume_avg_period: int = 20
    impulse_atr_ratio: float = 1.5
    zone_range_mode: str = "body"  # "body" or "wick"
    touch_mode: str = "touch"  # "touch" or "close"
    breaker_enabled: bool = True
    single_use_zones: bool = True

    # Confirmation
    engulfing_enabled: bool = True
    pin_bar_enabled: bool = True
    pin_wick_ratio: float = 2.0
    pin_close_pct: float = 33.0

    # Trend
    trend_ma_period: int = 50
    trend_ma_method: str = "ema"  # "ema" or "sma"

    # Risk
    risk_percent: float = 1.0
    rr_ratio: float = 2.0
    stop_buffer_pips: float = 2.0
    recompute_target_on_fill: bool = True
    max_open_positions: int = 0  # 0 = unlimited

    # Position management
    break_even_enabled: bool = True
    break_even_trigger_rr: float = 1.0
    break_even_lock_pips: float = 1.0
    partial_close_enabled: bool = True
    partial_close_rr: float = 1.0
    partial_close_pct: float = 50.0
    trailing_enabled: bool = True
    trailing_start_rr: float = 1.5
    trailing_mode: str = "atr"  # "atr" or "fixed"
    trailing_atr_multiplier: float = 1.5
    trailing_distance_pips: float = 15.0

    # Filters
    session_window: str = "07:00-21:00"
    news_windows: str = ""
    session_timezone: str = "UTC"
    max_spread_points: float = 30.0

    def __post_init__(self) -> None:
        for name, allowed in _MODES.items():
            value = getattr(self, name)
            if value not in allowed:
                raise ValueError(
                    f"{name} must be one of {', '.join(allowed)}, got '{value}'"
                )
        for name in _POSITIVE:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in _NON_NEGATIVE:
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        if self.partial_close_pct > 100:
            raise ValueError(
                f"partial_close_pct must be at most 100, got {self.partial_close_pct}"
            )
        try:
            ZoneInfo(self.session_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"session_timezone '{self.session_timezone}' is not a known timezone"
            ) from exc
        TimeWindow.parse(self.session_window)
        parse_windows(self.news_windows)

    @property
    def session(self) -> TimeWindow:
        return TimeWindow.parse(self.session_window)

    @property
    def news(self) -> list[TimeWindow]:
        return parse_windows(self.news_windows)


def _convert(raw: str, kind: type, name: str):
    if kind is bool:
        value = raw.strip().lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ValueError(f"{name.upper()} must be a boolean, got '{raw}'")
    try:
        return kind(raw)
    except ValueError as exc:
        raise ValueError(f"{name.upper()} must be {kind.__name__}, got '{raw}'") from exc


def load_config(env_path: str | None = None) -> StrategyConfig:
    """Load configuration from environment variables.

    Each field is read from the upper-case variable of the same name
    (``RISK_PERCENT``, ``SESSION_WINDOW``, ...).  Unset variables keep
    their defaults.

    Raises ``ValueError`` naming the variable when a value cannot be
    converted or fails validation.
    """
    load_dotenv(dotenv_path=env_path)

    values = {}
    for f in fields(StrategyConfig):
        raw = os.environ.get(f.name.upper())
        if raw is None or raw == "":
            continue
        values[f.name] = _convert(raw, f.type, f.name)
    return StrategyConfig(**values)

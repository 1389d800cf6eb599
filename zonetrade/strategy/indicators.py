"""Technical indicators — ATR, EMA, SMA and trailing averages. Pure functions, no I/O.

The list-based functions take candles oldest-first.  The ``*_at`` helpers
evaluate them at a recency shift through a ``BarCursor``.
"""

from zonetrade.strategy.bars import BarCursor, InsufficientDataError
from zonetrade.strategy.models import CandleData


def calculate_atr(candles: list[CandleData], period: int = 14) -> float:
    """Calculate the Average True Range over *period* candles.

    Uses the standard True Range definition:
        TR = max(high - low, |high - prev_close|, |low - prev_close|)

    Requires at least ``period + 1`` candles (need a previous close for TR).
    Returns the simple average of the last *period* true ranges.

    Raises ``InsufficientDataError`` if insufficient data.
    """
    if len(candles) < period + 1:
        raise InsufficientDataError(
            f"Need at least {period + 1} candles for ATR({period}), "
            f"got {len(candles)}"
        )

    true_ranges: list[float] = []
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        tr = max(
            high - low,
            abs(high - prev_close),
            abs(low - prev_close),
        )
        true_ranges.append(tr)

    recent = true_ranges[-period:]
    return sum(recent) / len(recent)


def calculate_ema(candles: list[CandleData], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the standard EMA formula:
        ``EMA_today = close × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first EMA value is seeded with the SMA of the first *period*
    closes.  Entries before the seed are ``float('nan')``.

    Raises ``InsufficientDataError`` if fewer than *period* candles are
    provided.
    """
    if len(candles) < period:
        raise InsufficientDataError(
            f"Need at least {period} candles for EMA({period}), "
            f"got {len(candles)}"
        )

    k = 2.0 / (period + 1)
    closes = [c.close for c in candles]
    ema: list[float] = [float("nan")] * len(closes)

    seed = sum(closes[:period]) / period
    ema[period - 1] = seed

    for i in range(period, len(closes)):
        ema[i] = closes[i] * k + ema[i - 1] * (1 - k)

    return ema


def calculate_sma(candles: list[CandleData], period: int) -> float:
    """Simple average of the last *period* closes."""
    if len(candles) < period:
        raise InsufficientDataError(
            f"Need at least {period} candles for SMA({period}), "
            f"got {len(candles)}"
        )
    window = candles[-period:]
    return sum(c.close for c in window) / period


def average_body(candles: list[CandleData]) -> float:
    if not candles:
        raise InsufficientDataError("no candles for average body")
    return sum(c.body for c in candles) / len(candles)


def average_volume(candles: list[CandleData]) -> float:
    if not candles:
        raise InsufficientDataError("no candles for average volume")
    return sum(c.volume for c in candles) / len(candles)


# ── Cursor helpers ───────────────────────────────────────────────────────


def atr_at(cursor: BarCursor, shift: int, period: int = 14) -> float:
    """ATR(*period*) ending at the closed bar *shift*.

    Raises ``InsufficientDataError`` when history is short or the
    result is not positive.
    """
    atr = calculate_atr(cursor.history(shift, period + 1), period)
    if atr <= 0:
        raise InsufficientDataError(f"ATR at bar {shift} is zero")
    return atr


def moving_average_at(
    cursor: BarCursor,
    shift: int,
    period: int,
    method: str = "ema",
    warmup_factor: int = 4,
) -> float:
    """Moving average of closes ending at the closed bar *shift*.

    The EMA is computed over a bounded window of ``period × warmup_factor``
    bars (or whatever history exists beyond *period*).
    """
    if method == "sma":
        return calculate_sma(cursor.history(shift, period), period)

    available = cursor.closed_count() - shift + 1
    count = min(period * warmup_factor, available)
    if count < period:
        raise InsufficientDataError(
            f"Need at least {period} bars for EMA({period}) at bar {shift}"
        )
    return calculate_ema(cursor.history(shift, count), period)[-1]


def trailing_average_body(cursor: BarCursor, shift: int, period: int) -> float:
    """Average body of the *period* bars older than *shift*."""
    return average_body(cursor.history(shift + 1, period))


def trailing_average_volume(cursor: BarCursor, shift: int, period: int) -> float:
    """Average volume of the *period* bars older than *shift*."""
    return average_volume(cursor.history(shift + 1, period))

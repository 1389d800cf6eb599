"""Bar cursor — explicit closed-vs-forming view over a bar source.

Indices follow the broker convention: 0 is the forming bar, 1 the last
closed bar, larger values are older.  Strategy code only ever reads
closed bars through ``closed()`` / ``history()``.
"""

from typing import Optional

from zonetrade.strategy.models import CandleData


class InsufficientDataError(ValueError):
    """A requested bar is missing or carries an invalid price."""


def _is_valid(bar: Optional[CandleData]) -> bool:
    if bar is None:
        return False
    return min(bar.open, bar.high, bar.low, bar.close) > 0


class BarCursor:
    """Read-only accessor for one bar source.

    Args:
        source: Any object exposing ``bar(index)`` and ``bar_count()``.
    """

    def __init__(self, source) -> None:
        self._source = source

    @property
    def source(self):
        return self._source

    def closed_count(self) -> int:
        """Number of closed bars available."""
        return max(self._source.bar_count() - 1, 0)

    def has(self, shift: int) -> bool:
        return 1 <= shift <= self.closed_count()

    def forming(self) -> CandleData:
        bar = self._source.bar(0)
        if not _is_valid(bar):
            raise InsufficientDataError("forming bar unavailable")
        return bar

    def closed(self, shift: int) -> CandleData:
        """Return the closed bar *shift* bars back (``shift >= 1``).

        Raises ``InsufficientDataError`` when the bar is missing or has a
        non-positive price.
        """
        if shift < 1:
            raise ValueError(f"closed bars start at shift 1, got {shift}")
        if shift > self.closed_count():
            raise InsufficientDataError(
                f"bar {shift} requested, only {self.closed_count()} closed bars"
            )
        bar = self._source.bar(shift)
        if not _is_valid(bar):
            raise InsufficientDataError(f"bar {shift} is missing or invalid")
        return bar

    def history(self, shift: int, count: int) -> list[CandleData]:
        """Return *count* closed bars starting at *shift*, oldest-first.

        The newest bar of the result is ``closed(shift)``.
        """
        return [self.closed(s) for s in range(shift + count - 1, shift - 1, -1)]

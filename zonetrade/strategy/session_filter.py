"""Session and news filters — time-of-day windows in a configured timezone.

Windows are written ``HH:MM-HH:MM`` (inclusive start, exclusive end) and
may wrap midnight, e.g. ``22:00-02:00``.
"""

import re
from dataclasses import dataclass
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo


_WINDOW_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})\s*$")


def _to_time(hour: str, minute: str, text: str) -> time:
    h, m = int(hour), int(minute)
    if h == 24 and m == 0:
        return time(0, 0)
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Invalid time in window '{text}'")
    return time(h, m)


@dataclass(frozen=True)
class TimeWindow:
    """A daily time-of-day window."""

    start: time
    end: time

    @classmethod
    def parse(cls, text: str) -> "TimeWindow":
        """Parse ``HH:MM-HH:MM``.

        Raises ``ValueError`` naming the text when it is malformed.
        """
        match = _WINDOW_RE.match(text or "")
        if match is None:
            raise ValueError(f"Malformed time window '{text}', expected HH:MM-HH:MM")
        start = _to_time(match.group(1), match.group(2), text)
        end = _to_time(match.group(3), match.group(4), text)
        return cls(start=start, end=end)

    def contains(self, t: time) -> bool:
        if self.start == self.end:
            # A zero-length window spans the whole day.
            return True
        if self.start < self.end:
            return self.start <= t < self.end
        return t >= self.start or t < self.end


def parse_windows(text: str) -> list[TimeWindow]:
    """Parse a comma-separated list of blackout windows; empty text gives ``[]``.

    A window whose start equals its end is rejected: as a blackout it
    would cover the whole day.
    """
    if not text or not text.strip():
        return []
    windows = []
    for part in text.split(","):
        window = TimeWindow.parse(part)
        if window.start == window.end:
            raise ValueError(f"Zero-length news window '{part.strip()}'")
        windows.append(window)
    return windows


def _local_time(now: datetime, tz: ZoneInfo) -> time:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).time().replace(second=0, microsecond=0)


def is_in_session(now: datetime, window: TimeWindow, tz: ZoneInfo) -> bool:
    """Return True if *now* falls within *window* in timezone *tz*.

    Naive datetimes are taken as UTC.
    """
    return window.contains(_local_time(now, tz))


def is_in_blackout(now: datetime, windows: list[TimeWindow], tz: ZoneInfo) -> bool:
    """Return True if *now* falls within any news blackout window."""
    local = _local_time(now, tz)
    return any(w.contains(local) for w in windows)


class ScheduleGate:
    """Session/news gate built from configured windows.

    Args:
        session: Trading session window.
        news: News blackout windows.
        tz_name: IANA timezone both are expressed in.
    """

    def __init__(
        self,
        session: TimeWindow,
        news: list[TimeWindow],
        tz_name: str = "UTC",
    ) -> None:
        self._session = session
        self._news = list(news)
        self._tz = ZoneInfo(tz_name)

    @classmethod
    def from_config(cls, config) -> "ScheduleGate":
        return cls(config.session, config.news, config.session_timezone)

    def is_session_open(self, now: datetime) -> bool:
        return is_in_session(now, self._session, self._tz)

    def is_news_blackout(self, now: datetime) -> bool:
        return is_in_blackout(now, self._news, self._tz)

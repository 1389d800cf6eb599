"""Tests for the session, news and spread filters."""

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from zonetrade.config import StrategyConfig
from zonetrade.strategy.session_filter import (
    ScheduleGate,
    TimeWindow,
    is_in_blackout,
    is_in_session,
    parse_windows,
)
from zonetrade.strategy.spread_filter import is_spread_acceptable, spread_in_points


UTC = ZoneInfo("UTC")


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 3, hour, minute, tzinfo=timezone.utc)


class TestTimeWindow:
    def test_start_inclusive_end_exclusive(self):
        window = TimeWindow.parse("07:00-21:00")
        assert window.contains(time(7, 0))
        assert window.contains(time(20, 59))
        assert not window.contains(time(21, 0))
        assert not window.contains(time(6, 59))

    def test_window_wrapping_midnight(self):
        window = TimeWindow.parse("22:00-02:00")
        assert window.contains(time(23, 30))
        assert window.contains(time(1, 59))
        assert not window.contains(time(2, 0))
        assert not window.contains(time(12, 0))

    def test_end_of_day_written_as_24(self):
        window = TimeWindow.parse("20:00-24:00")
        assert window.contains(time(23, 59))
        assert not window.contains(time(0, 0))
        assert not window.contains(time(19, 59))

    def test_equal_start_and_end_is_whole_day(self):
        window = TimeWindow.parse("00:00-00:00")
        assert window.contains(time(0, 0))
        assert window.contains(time(13, 37))

    def test_whitespace_tolerated(self):
        assert TimeWindow.parse(" 7:30 - 9:00 ") == TimeWindow(time(7, 30), time(9, 0))

    @pytest.mark.parametrize("text", ["7-21", "25:00-26:00", "07:60-08:00", "", "07:00"])
    def test_malformed_window_raises(self, text):
        with pytest.raises(ValueError):
            TimeWindow.parse(text)


class TestParseWindows:
    def test_empty_text(self):
        assert parse_windows("") == []
        assert parse_windows("   ") == []

    def test_comma_separated(self):
        windows = parse_windows("12:25-12:45, 14:00-14:30")
        assert len(windows) == 2
        assert windows[1].start == time(14, 0)

    def test_one_bad_entry_fails_the_list(self):
        with pytest.raises(ValueError, match="12:99"):
            parse_windows("08:00-09:00,12:99-13:00")

    def test_zero_length_window_rejected(self):
        # As a blackout it would block the whole trading day.
        with pytest.raises(ValueError, match="13:30-13:30"):
            parse_windows("08:00-09:00, 13:30-13:30")


class TestSessionFilter:
    def test_session_filter_in(self):
        assert is_in_session(_at(10), TimeWindow.parse("07:00-21:00"), UTC)

    def test_session_filter_out(self):
        assert not is_in_session(_at(22), TimeWindow.parse("07:00-21:00"), UTC)

    def test_session_in_local_timezone(self):
        new_york = ZoneInfo("America/New_York")
        window = TimeWindow.parse("09:30-16:00")
        # 15:00 UTC is 10:00 EST in early March.
        assert is_in_session(_at(15), window, new_york)
        assert not is_in_session(_at(13), window, new_york)

    def test_naive_datetime_taken_as_utc(self):
        naive = datetime(2025, 3, 3, 10, 0)
        assert is_in_session(naive, TimeWindow.parse("09:00-11:00"), UTC)


class TestNewsBlackout:
    def test_inside_any_window(self):
        windows = parse_windows("08:25-08:45,12:25-12:45")
        assert is_in_blackout(_at(12, 30), windows, UTC)
        assert not is_in_blackout(_at(9, 0), windows, UTC)

    def test_no_windows(self):
        assert not is_in_blackout(_at(12, 30), [], UTC)


class TestScheduleGate:
    def test_from_config(self):
        cfg = StrategyConfig(
            session_window="08:00-17:00",
            news_windows="13:30-14:00",
            session_timezone="Europe/London",
        )
        gate = ScheduleGate.from_config(cfg)
        # London is on GMT in early March.
        assert gate.is_session_open(_at(9))
        assert not gate.is_session_open(_at(18))
        assert gate.is_news_blackout(_at(13, 45))
        assert not gate.is_news_blackout(_at(14, 0))


class TestSpreadFilter:
    def test_spread_acceptable(self):
        assert is_spread_acceptable(25.0, 30.0)
        assert is_spread_acceptable(30.0, 30.0)

    def test_spread_too_wide(self):
        assert not is_spread_acceptable(31.0, 30.0)

    def test_zero_ceiling_disables_check(self):
        assert is_spread_acceptable(500.0, 0)

    def test_spread_in_points(self):
        assert spread_in_points(1.10000, 1.10020, 0.00001) == pytest.approx(20.0)

    def test_spread_in_points_rejects_zero_point(self):
        with pytest.raises(ValueError, match="point"):
            spread_in_points(1.1, 1.2, 0.0)

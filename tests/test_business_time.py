"""
Tests for the business-clock helpers (Europe/Lisbon by default).
"""

from datetime import date, datetime, timezone

import pytest

from telepsy.core.business import (
    daterange,
    format_minutes,
    format_slot_bound,
    local_day_bounds,
    local_minute_of_day,
    local_month_bounds,
    local_today,
    local_window,
    parse_date,
    parse_minutes,
    parse_slot_bound,
)
from telepsy.core.errors import InvalidParameter

UTC = timezone.utc


@pytest.mark.unit
class TestParsing:

    def test_parse_minutes(self):
        assert parse_minutes("00:00") == 0
        assert parse_minutes("09:30") == 570
        assert parse_minutes("23:59") == 1439

    @pytest.mark.parametrize("value", ["24:00", "9h30", "", "10:75", None, "-1:00"])
    def test_parse_minutes_rejects_garbage(self, value):
        with pytest.raises(InvalidParameter):
            parse_minutes(value)

    def test_slot_bound_accepts_end_of_day(self):
        assert parse_slot_bound("24:00") == 1440
        assert format_slot_bound(1440) == "24:00"
        assert format_slot_bound(630) == "10:30"

    def test_format_minutes_wraps(self):
        assert format_minutes(540) == "09:00"
        assert format_minutes(1440 + 30) == "00:30"
        assert format_minutes(-30) == "23:30"

    def test_parse_date(self):
        assert parse_date("2025-03-03") == date(2025, 3, 3)
        assert parse_date(date(2025, 3, 3)) == date(2025, 3, 3)
        with pytest.raises(InvalidParameter):
            parse_date("03-03-2025")


@pytest.mark.unit
class TestLocalClock:

    def test_window_in_winter_matches_utc(self):
        start, end = local_window(date(2025, 1, 15), 540, 45)
        assert start == datetime(2025, 1, 15, 9, 0, tzinfo=UTC)
        assert end == datetime(2025, 1, 15, 9, 45, tzinfo=UTC)

    def test_window_in_summer_is_one_hour_behind(self):
        start, _ = local_window(date(2025, 7, 7), 540, 45)
        assert start == datetime(2025, 7, 7, 8, 0, tzinfo=UTC)

    def test_window_is_midnight_plus_offset_on_dst_day(self):
        # Clocks jump 01:00 -> 02:00 on 2025-03-30; the offset is counted from midnight
        start, _ = local_window(date(2025, 3, 30), 600, 45)
        assert start == datetime(2025, 3, 30, 10, 0, tzinfo=UTC)

    def test_minute_of_day_on_business_clock(self):
        assert local_minute_of_day(datetime(2025, 7, 7, 8, 0, tzinfo=UTC)) == 540
        assert local_minute_of_day(datetime(2025, 1, 7, 8, 0, tzinfo=UTC)) == 480

    def test_local_today_crosses_midnight(self):
        # 23:30 UTC in July is already the next day in Lisbon
        assert local_today(datetime(2025, 7, 7, 23, 30, tzinfo=UTC)) == date(2025, 7, 8)

    def test_day_and_month_bounds(self):
        start, end = local_day_bounds(date(2025, 7, 7))
        assert start == datetime(2025, 7, 6, 23, 0, tzinfo=UTC)
        assert end == datetime(2025, 7, 7, 23, 0, tzinfo=UTC)

        first, nxt = local_month_bounds(date(2025, 2, 14))
        assert first == datetime(2025, 2, 1, 0, 0, tzinfo=UTC)
        assert nxt == datetime(2025, 3, 1, 0, 0, tzinfo=UTC)

    def test_daterange_is_inclusive(self):
        days = list(daterange(date(2025, 3, 3), date(2025, 3, 31), step_days=7))
        assert days == [date(2025, 3, d) for d in (3, 10, 17, 24, 31)]

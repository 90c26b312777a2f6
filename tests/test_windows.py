"""Tests for time window generation."""

from datetime import date
from types import SimpleNamespace

import pytest

from swimslot.domain.slots.windows import (
    effective_slot_hours,
    generate_time_windows,
    normalize_time,
    to_minutes,
)

DAY = date(2030, 6, 10)


def slot(start="09:00", end="11:00", duration=60, holiday=False, slot_id="slot-1"):
    return SimpleNamespace(
        id=slot_id, start_time=start, end_time=end, slot_duration=duration, is_holiday=holiday
    )


class TestGenerateTimeWindows:
    """Windows are back-to-back sessions of slot_duration minutes."""

    def test_two_hour_slot_gives_two_hourly_windows(self):
        windows = generate_time_windows(slot(), DAY)
        assert [(w.start_time, w.end_time) for w in windows] == [("09:00", "10:00"), ("10:00", "11:00")]
        assert all(w.date == "2030-06-10" for w in windows)
        assert all(w.slot_id == "slot-1" for w in windows)
        assert all(w.is_available for w in windows)

    @pytest.mark.parametrize(
        "start,end,duration,expected",
        [
            ("06:00", "12:00", 60, 6),
            ("06:00", "12:00", 30, 12),
            ("06:00", "12:00", 45, 8),
            ("09:00", "10:30", 60, 1),
            ("07:15", "08:00", 15, 3),
        ],
    )
    def test_window_count_is_floor_of_range_over_duration(self, start, end, duration, expected):
        windows = generate_time_windows(slot(start, end, duration), DAY)
        assert len(windows) == expected
        assert len(windows) == (to_minutes(end) - to_minutes(start)) // duration

    def test_partial_trailing_window_is_dropped(self):
        windows = generate_time_windows(slot("09:00", "10:30", 60), DAY)
        assert windows[-1].end_time == "10:00"

    def test_holiday_has_no_windows(self):
        assert generate_time_windows(slot(holiday=True), DAY) == []

    @pytest.mark.parametrize("start,end", [("11:00", "11:00"), ("12:00", "09:00")])
    def test_empty_or_inverted_range_has_no_windows(self, start, end):
        assert generate_time_windows(slot(start, end), DAY) == []

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_has_no_windows(self, duration):
        assert generate_time_windows(slot(duration=duration), DAY) == []

    def test_single_digit_hours_are_padded(self):
        windows = generate_time_windows(slot("9:00", "10:00"), DAY)
        assert windows[0].start_time == "09:00"


class TestSlotExceptions:
    """A per-date exception overrides hours or closes the day."""

    def test_exception_changes_hours_on_its_date(self):
        exception = SimpleNamespace(date=DAY, new_start_time="10:00", new_end_time="12:00", is_holiday=False)
        windows = generate_time_windows(slot(), DAY, exception)
        assert [w.start_time for w in windows] == ["10:00", "11:00"]

    def test_exception_holiday_closes_the_day(self):
        exception = SimpleNamespace(date=DAY, new_start_time=None, new_end_time=None, is_holiday=True)
        assert generate_time_windows(slot(), DAY, exception) == []

    def test_exception_for_another_date_is_ignored(self):
        exception = SimpleNamespace(
            date=date(2030, 6, 11), new_start_time="15:00", new_end_time=None, is_holiday=False
        )
        hours = effective_slot_hours(slot(), DAY, exception)
        assert hours.start_time == "09:00"


class TestNormalizeTime:
    @pytest.mark.parametrize(
        "value,expected",
        [("9:00", "09:00"), ("09:00", "09:00"), ("09:00:00", "09:00"), ("23:59:59", "23:59")],
    )
    def test_accepted_formats(self, value, expected):
        assert normalize_time(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "9", "09:60", "nine"])
    def test_rejects_invalid_times(self, value):
        with pytest.raises(ValueError):
            normalize_time(value)

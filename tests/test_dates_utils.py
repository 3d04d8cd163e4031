from __future__ import annotations

from datetime import date, datetime

from utils.dates import format_br_date, month_bounds, sunday_index, to_date, to_storage_datetime, week_bounds


def test_week_bounds_start_on_sunday():
    # 2024-05-15 is a Wednesday
    start, end = week_bounds(date(2024, 5, 15))
    assert start == datetime(2024, 5, 12)
    assert end == datetime(2024, 5, 19)


def test_week_bounds_on_sunday_and_saturday():
    assert week_bounds(date(2024, 5, 12))[0] == datetime(2024, 5, 12)
    assert week_bounds(date(2024, 5, 18))[0] == datetime(2024, 5, 12)


def test_month_bounds_regular_and_december():
    assert month_bounds(date(2024, 2, 29)) == (datetime(2024, 2, 1), datetime(2024, 3, 1))
    assert month_bounds(date(2023, 12, 31)) == (datetime(2023, 12, 1), datetime(2024, 1, 1))


def test_sunday_index():
    assert sunday_index(date(2024, 5, 12)) == 0  # Sunday
    assert sunday_index(date(2024, 5, 13)) == 1  # Monday
    assert sunday_index(datetime(2024, 5, 18, 23, 59)) == 6  # Saturday


def test_storage_conversion_round_trip():
    stored = to_storage_datetime(date(2024, 1, 2))
    assert stored == datetime(2024, 1, 2, 0, 0)
    assert to_date(stored) == date(2024, 1, 2)
    assert to_date(None) is None


def test_format_br_date():
    assert format_br_date(datetime(2024, 3, 7)) == "07/03/2024"
    assert format_br_date(None) == ""

from __future__ import annotations

from datetime import date, datetime

from attendance_ledger.common.datetime_utils import (
    at_local_time,
    days_remaining_in_year,
    format_clock,
    format_duration,
    iter_weekdays,
    parse_clock,
    to_local,
    to_utc_naive,
    worked_minutes,
    working_days_by_year,
)

TZ = "Asia/Karachi"


def test_worked_minutes_truncates_to_the_minute():
    start = datetime(2025, 3, 3, 10, 0, 59)
    end = datetime(2025, 3, 3, 14, 30, 1)
    assert worked_minutes(start, end) == 270


def test_worked_minutes_never_negative():
    assert worked_minutes(datetime(2025, 3, 3, 12, 0), datetime(2025, 3, 3, 11, 0)) == 0


def test_naive_values_are_utc():
    assert to_local(datetime(2025, 3, 3, 5, 0), TZ).hour == 10


def test_local_time_round_trips_through_utc_naive():
    value = at_local_time(date(2025, 3, 3), parse_clock("10:00"), TZ)
    assert to_utc_naive(value) == datetime(2025, 3, 3, 5, 0)


def test_working_days_split_across_years():
    # Mon 29 Dec 2025 .. Fri 2 Jan 2026
    assert working_days_by_year(date(2025, 12, 29), date(2026, 1, 2)) == {2025: 3, 2026: 2}


def test_year_with_only_weekend_days_reports_zero():
    # Sat 31 Dec 2022 .. Mon 2 Jan 2023
    assert working_days_by_year(date(2022, 12, 31), date(2023, 1, 2)) == {2022: 0, 2023: 1}


def test_iter_weekdays_skips_weekend():
    days = list(iter_weekdays(date(2025, 3, 7), date(2025, 3, 10)))
    assert days == [date(2025, 3, 7), date(2025, 3, 10)]


def test_formatting():
    assert format_duration(390) == "6h 30m"
    assert format_clock(datetime(2025, 3, 3, 19, 0)) == "7:00 PM"
    assert format_clock(datetime(2025, 3, 3, 0, 5)) == "12:05 AM"


def test_days_remaining_in_year_is_inclusive():
    assert days_remaining_in_year(date(2025, 12, 31)) == 1
    assert days_remaining_in_year(date(2025, 1, 1)) == 365

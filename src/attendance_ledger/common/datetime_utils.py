from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterator

import pytz


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_clock(value: str) -> time:
    """Parse HH:MM (or HH:MM:SS) into a time of day."""
    fmt = "%H:%M:%S" if value.count(":") == 2 else "%H:%M"
    return datetime.strptime(value, fmt).time()


def now_local(timezone_str: str) -> datetime:
    """Current time in the organization timezone.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(pytz.UTC).astimezone(pytz.timezone(timezone_str))


def to_local(value: datetime, timezone_str: str) -> datetime:
    """Convert to the organization timezone; naive values are treated as UTC."""
    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    return value.astimezone(pytz.timezone(timezone_str))


def localize(value: datetime, timezone_str: str) -> datetime:
    """Attach the organization timezone to a naive wall-clock value; aware values pass through."""
    if value.tzinfo is not None:
        return value
    return pytz.timezone(timezone_str).localize(value)


def to_utc_naive(value: datetime) -> datetime:
    """Aware datetime -> naive UTC, the form DATETIME columns store."""
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def local_day(value: datetime, timezone_str: str) -> date:
    return to_local(value, timezone_str).date()


def at_local_time(day: date, clock: time, timezone_str: str) -> datetime:
    """Wall-clock `clock` on `day` in the organization timezone."""
    tz = pytz.timezone(timezone_str)
    return tz.localize(datetime.combine(day, clock.replace(tzinfo=None)))


def is_weekend(day: date) -> bool:
    return day.isoweekday() in (6, 7)


def truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


def worked_minutes(check_in: datetime, check_out: datetime) -> int:
    """Whole minutes between check-in and check-out, both truncated to the minute."""
    delta = truncate_to_minute(check_out) - truncate_to_minute(check_in)
    return max(0, int(delta.total_seconds() // 60))


def format_duration(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m"


def format_clock(value: datetime) -> str:
    """12-hour clock label such as 7:00 PM."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_weekdays(start: date, end: date) -> Iterator[date]:
    return (d for d in iter_days(start, end) if not is_weekend(d))


def working_days_by_year(start: date, end: date) -> Dict[int, int]:
    """Weekday count of [start, end] grouped by calendar year.

    Years whose portion has no weekday are still reported with 0.
    """
    counts: Counter = Counter({year: 0 for year in range(start.year, end.year + 1)})
    for day in iter_weekdays(start, end):
        counts[day.year] += 1
    return dict(counts)


def days_remaining_in_year(day: date) -> int:
    """Days from `day` to Dec 31 inclusive."""
    return (date(day.year, 12, 31) - day).days + 1

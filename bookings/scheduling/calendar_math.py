"""
Calendar math

Pure interval helpers. Every instant handled by the engine is a naive
datetime in UTC; timezones only apply when a wall-clock date is mapped to an
instant or an instant is formatted for display.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Tuple

import pytz


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC, dropping seconds."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: [a_start, a_end) against [b_start, b_end)."""
    return a_start < b_end and a_end > b_start


def expand_with_buffer(
    start: datetime,
    end: datetime,
    before_minutes: int,
    after_minutes: int
) -> Tuple[datetime, datetime]:
    return (
        start - timedelta(minutes=before_minutes or 0),
        end + timedelta(minutes=after_minutes or 0),
    )


def localize_to_utc(day: date, wall_time: time, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
    """Map a wall-clock time on ``day`` in ``tz`` to a naive UTC instant."""
    local = tz.localize(datetime.combine(day, wall_time))
    return local.astimezone(pytz.UTC).replace(tzinfo=None)


def local_date(instant: datetime, tz: pytz.tzinfo.BaseTzInfo) -> date:
    """Agency-local calendar date of a naive UTC instant."""
    return pytz.UTC.localize(instant).astimezone(tz).date()


def format_utc_iso(instant: datetime) -> str:
    return instant.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_month(month: str) -> Tuple[int, int]:
    """Parse ``YYYY-MM``. Raises ValueError on malformed input."""
    parsed = datetime.strptime(month, "%Y-%m")
    return parsed.year, parsed.month


def iter_month_days(year: int, month: int) -> Iterator[date]:
    _, last_day = calendar.monthrange(year, month)
    for day in range(1, last_day + 1):
        yield date(year, month, day)

"""
Availability Window Resolver

Expands an agency's recurring weekly schedule into concrete open windows:
- per date: the day's periods mapped to UTC through the agency timezone
- per month: the dates that have a schedule and fall inside the booking
  type's notice/horizon bounds
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from bookings.models.agency import AgencyAvailability
from bookings.models.booking_type import BookingType
from bookings.scheduling.calendar_math import iter_month_days, local_date, localize_to_utc, utc_now
from bookings.scheduling.schedule import END_OF_DAY, parse_weekly_schedule, resolve_timezone, weekday_name


@dataclass(frozen=True)
class Window:
    """Open availability period as naive UTC instants."""
    start: datetime
    end: datetime


def _to_instant(day: date, wall_time: time, tz) -> datetime:
    if wall_time == END_OF_DAY:
        return localize_to_utc(day + timedelta(days=1), time(0, 0), tz)
    return localize_to_utc(day, wall_time, tz)


def get_agency_availability(db: Session, agency_id: int) -> Optional[AgencyAvailability]:
    return db.query(AgencyAvailability).filter(AgencyAvailability.agency_id == agency_id).first()


def resolve_day_windows(
    availability: Optional[AgencyAvailability],
    target_date: date,
    now: Optional[datetime] = None,
) -> List[Window]:
    """
    Open windows for ``target_date`` in the agency timezone.

    Returns an empty list when the agency has no availability record, the
    weekday has no periods, or the date is already in the past locally.
    """
    if availability is None:
        return []

    now = now or utc_now()
    tz = resolve_timezone(availability.timezone)

    if target_date < local_date(now, tz):
        return []

    schedule = parse_weekly_schedule(availability.weekly_schedule)
    periods = schedule[weekday_name(target_date)]

    return [
        Window(
            start=_to_instant(target_date, period.start, tz),
            end=_to_instant(target_date, period.end, tz),
        )
        for period in periods
    ]


def resolve_available_days(
    booking_type: BookingType,
    availability: Optional[AgencyAvailability],
    year: int,
    month: int,
    now: Optional[datetime] = None,
) -> List[date]:
    """
    Dates in the month with a non-empty schedule whose local date lies in
    ``[now + min_notice, now + max_future_days]``, both ends inclusive.
    """
    if availability is None:
        return []

    now = now or utc_now()
    tz = resolve_timezone(availability.timezone)
    schedule = parse_weekly_schedule(availability.weekly_schedule)

    first_bookable = local_date(now + timedelta(hours=booking_type.min_notice), tz)
    last_bookable = local_date(now + timedelta(days=booking_type.max_future_days), tz)

    return [
        day
        for day in iter_month_days(year, month)
        if first_bookable <= day <= last_bookable and schedule[weekday_name(day)]
    ]

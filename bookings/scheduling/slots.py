"""
Slot Generation Service

Generates discrete offerable start times for a booking type on a date,
considering:
- Effective availability windows
- Minimum notice and maximum horizon
- Existing appointments (with their buffers) of every eligible host
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from bookings.core import config
from bookings.models.appointment import Appointment
from bookings.models.booking_type import BookingType
from bookings.scheduling.availability import (
    Window,
    get_agency_availability,
    resolve_available_days,
    resolve_day_windows,
)
from bookings.scheduling.calendar_math import local_date, parse_month, utc_now
from bookings.scheduling.conflicts import fetch_active_appointments, find_conflicts
from bookings.scheduling.hosts import get_policy, host_ids_for_request
from bookings.scheduling.schedule import resolve_timezone


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    host_id: int


def notice_cutoff(booking_type: BookingType, now: datetime) -> datetime:
    return now + timedelta(hours=booking_type.min_notice)


def last_bookable_date(booking_type: BookingType, now: datetime, tz) -> date:
    return local_date(now + timedelta(days=booking_type.max_future_days), tz)


def build_slots(
    windows: Sequence[Window],
    appointments: Sequence[Appointment],
    ordered_host_ids: Sequence[int],
    duration_minutes: int,
    cutoff: datetime,
    increment_minutes: int,
) -> List[Slot]:
    """
    Step through each window and keep the starts that fit, clear the notice
    cutoff, and leave at least one host free.

    Steps:
        1. Start at the window start, advance by ``increment_minutes``
        2. Stop once ``start + duration`` passes the window end
        3. Reject starts at or before ``cutoff``
        4. Assign the first host in order with no buffered conflict
    """
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=increment_minutes)
    slots = []

    for window in sorted(windows, key=lambda w: w.start):
        current = window.start
        while current + duration <= window.end:
            slot_end = current + duration
            if current > cutoff:
                for host_id in ordered_host_ids:
                    if not find_conflicts(appointments, host_id, current, slot_end):
                        slots.append(Slot(start=current, end=slot_end, host_id=host_id))
                        break
            current += step

    return slots


def generate_slots(
    db: Session,
    booking_type: BookingType,
    target_date: date,
    now: Optional[datetime] = None,
    increment_minutes: Optional[int] = None,
    host_user_id: Optional[int] = None,
) -> List[Slot]:
    """Offerable slots for ``target_date``, ascending; optionally for one host only."""
    now = now or utc_now()
    increment_minutes = increment_minutes or config.SLOT_INCREMENT_MINUTES

    host_ids = host_ids_for_request(db, booking_type, host_user_id)
    if not host_ids:
        return []

    availability = get_agency_availability(db, booking_type.agency_id)
    if availability is None:
        return []

    tz = resolve_timezone(availability.timezone)
    if target_date > last_bookable_date(booking_type, now, tz):
        return []

    windows = resolve_day_windows(availability, target_date, now)
    if not windows:
        return []

    ordered = get_policy(booking_type.assignment_policy).order(db, booking_type, host_ids, now)
    appointments = fetch_active_appointments(
        db,
        host_ids,
        min(window.start for window in windows),
        max(window.end for window in windows),
    )

    return build_slots(
        windows,
        appointments,
        ordered,
        booking_type.duration,
        notice_cutoff(booking_type, now),
        increment_minutes,
    )


def available_days(
    db: Session,
    booking_type: BookingType,
    month: str,
    now: Optional[datetime] = None,
    host_user_id: Optional[int] = None,
) -> List[date]:
    """Dates of ``month`` (``YYYY-MM``) that have a schedule inside the bookable range."""
    year, month_number = parse_month(month)

    if not host_ids_for_request(db, booking_type, host_user_id):
        return []

    availability = get_agency_availability(db, booking_type.agency_id)
    return resolve_available_days(booking_type, availability, year, month_number, now)


def is_offerable_start(
    db: Session,
    booking_type: BookingType,
    start: datetime,
    now: datetime,
) -> bool:
    """True if ``start`` fits a window of its day, clears notice, and is within the horizon."""
    if start <= notice_cutoff(booking_type, now):
        return False

    availability = get_agency_availability(db, booking_type.agency_id)
    if availability is None:
        return False

    tz = resolve_timezone(availability.timezone)
    day = local_date(start, tz)
    if day > last_bookable_date(booking_type, now, tz):
        return False

    end = start + timedelta(minutes=booking_type.duration)
    return any(
        window.start <= start and end <= window.end
        for window in resolve_day_windows(availability, day, now)
    )

"""
Conflict Detector

Decides whether a candidate interval is free for a host. Each existing
appointment is expanded by its own booking type's buffers before the overlap
test; cancelled appointments never conflict.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from bookings.core import config
from bookings.models.appointment import ACTIVE_STATUSES, Appointment
from bookings.models.booking_type import BookingType
from bookings.scheduling.calendar_math import expand_with_buffer, overlaps


def _buffer_reach(db: Session, host_ids: Sequence[int]) -> Tuple[timedelta, timedelta]:
    """
    How far before and after ``[start, end)`` an active appointment of these
    hosts can sit and still conflict.

    The configured padding is a floor; the largest buffers in use on the
    hosts' active appointments widen it.
    """
    max_before, max_after = db.query(
        func.max(BookingType.buffer_before),
        func.max(BookingType.buffer_after),
    ).join(Appointment, Appointment.booking_type_id == BookingType.id).filter(
        Appointment.host_user_id.in_(list(host_ids)),
        Appointment.status.in_(ACTIVE_STATUSES),
    ).one()

    padding = timedelta(hours=config.CONFLICT_WINDOW_PADDING_HOURS)
    return (
        max(padding, timedelta(minutes=max_after or 0)),
        max(padding, timedelta(minutes=max_before or 0)),
    )


def fetch_active_appointments(
    db: Session,
    host_ids: Sequence[int],
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> List[Appointment]:
    """
    Coarse pre-filter: active appointments of ``host_ids`` near ``[start, end)``.

    The window reaches back by the longest ``buffer_after`` and forward by the
    longest ``buffer_before`` in use so buffered neighbours are included; the
    precise buffered test happens in ``find_conflicts``.
    """
    if not host_ids:
        return []

    reach_back, reach_forward = _buffer_reach(db, host_ids)
    query = db.query(Appointment).options(joinedload(Appointment.booking_type)).populate_existing().filter(
        Appointment.host_user_id.in_(list(host_ids)),
        Appointment.status.in_(ACTIVE_STATUSES),
        Appointment.start_time < end + reach_forward,
        Appointment.end_time > start - reach_back,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return query.order_by(Appointment.start_time.asc()).all()


def find_conflicts(
    appointments: Iterable[Appointment],
    host_id: int,
    start: datetime,
    end: datetime,
) -> List[Appointment]:
    conflicts = []
    for appointment in appointments:
        if appointment.host_user_id != host_id or appointment.status not in ACTIVE_STATUSES:
            continue

        booking_type = appointment.booking_type
        buffered_start, buffered_end = expand_with_buffer(
            appointment.start_time,
            appointment.end_time,
            booking_type.buffer_before if booking_type else 0,
            booking_type.buffer_after if booking_type else 0,
        )
        if overlaps(start, end, buffered_start, buffered_end):
            conflicts.append(appointment)

    return conflicts


def is_host_free(
    db: Session,
    host_id: int,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    appointments = fetch_active_appointments(db, [host_id], start, end, exclude_appointment_id)
    return not find_conflicts(appointments, host_id, start, end)

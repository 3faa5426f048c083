"""
Appointment lifecycle

State machine for guest bookings:

    SCHEDULED --confirm--> CONFIRMED
    SCHEDULED | CONFIRMED --cancel--> CANCELLED (terminal)

Reschedule keeps the status and moves the interval. Every mutation re-runs
the conflict check for the host inside a per-host critical section (process
lock plus a row lock on the host) and commits before any collaborator is
called. Video meeting, calendar and notification calls are best effort.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.core import config
from bookings.core.errors import (
    AlreadyTerminal,
    InvalidSlot,
    NoHostAvailable,
    NotFound,
    PastAppointment,
    SlotTaken,
)
from bookings.database import host_lock
from bookings.integrations.calendar import CalendarEventSink, NullCalendarSink
from bookings.integrations.dispatch import SideEffectDispatcher
from bookings.integrations.notifications import LoggingNotificationSink, NotificationSink
from bookings.integrations.video import NullVideoSink, VideoMeetingSink, fallback_meeting_link
from bookings.models.appointment import CANCELLED, CONFIRMED, SCHEDULED, Appointment
from bookings.models.booking_type import VIDEO, BookingType
from bookings.models.user import User
from bookings.scheduling.availability import get_agency_availability
from bookings.scheduling.calendar_math import to_utc, utc_now
from bookings.scheduling.conflicts import is_host_free
from bookings.scheduling.hosts import get_policy, host_ids_for_request
from bookings.scheduling.slots import is_offerable_start

logger = logging.getLogger(__name__)

CANCELLED_BY_GUEST = 'GUEST'
CANCELLED_BY_HOST = 'HOST'


class AppointmentService:
    def __init__(
        self,
        db: Session,
        calendar_sink: Optional[CalendarEventSink] = None,
        notification_sink: Optional[NotificationSink] = None,
        dispatcher: Optional[SideEffectDispatcher] = None,
        clock: Callable[[], datetime] = utc_now,
        video_sink: Optional[VideoMeetingSink] = None,
    ):
        self.db = db
        self.video_sink = video_sink or NullVideoSink()
        self.calendar_sink = calendar_sink or NullCalendarSink()
        self.notification_sink = notification_sink or LoggingNotificationSink()
        self.dispatcher = dispatcher or SideEffectDispatcher()
        self.clock = clock

    def get_booking_type(self, booking_type_id: int, active_only: bool = True) -> BookingType:
        booking_type = self.db.get(BookingType, booking_type_id)
        if booking_type is None or (active_only and not booking_type.is_active):
            raise NotFound('Booking type not found.')
        return booking_type

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound('Appointment not found.')
        return appointment

    def list_appointments(
        self,
        agency_id: int,
        host_user_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_cancelled: bool = False,
    ) -> List[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.agency_id == agency_id)
        if host_user_id is not None:
            query = query.filter(Appointment.host_user_id == host_user_id)
        if start is not None:
            query = query.filter(Appointment.end_time > to_utc(start))
        if end is not None:
            query = query.filter(Appointment.start_time < to_utc(end))
        if not include_cancelled:
            query = query.filter(Appointment.status != CANCELLED)
        return query.order_by(Appointment.start_time.asc()).all()

    def create_booking(
        self,
        booking_type_id: int,
        start_time: datetime,
        guest_name: str,
        guest_email: str,
        guest_timezone: Optional[str] = None,
        notes: Optional[str] = None,
        guest_phone: Optional[str] = None,
        guest_company: Optional[str] = None,
        host_user_id: Optional[int] = None,
    ) -> Appointment:
        booking_type = self.get_booking_type(booking_type_id)
        now = self.clock()
        start = to_utc(start_time)
        end = start + timedelta(minutes=booking_type.duration)

        if not is_offerable_start(self.db, booking_type, start, now):
            raise InvalidSlot()

        host_ids = host_ids_for_request(self.db, booking_type, host_user_id)
        if not host_ids:
            raise NoHostAvailable()

        availability = get_agency_availability(self.db, booking_type.agency_id)
        timezone = guest_timezone or (availability.timezone if availability else config.DEFAULT_TIMEZONE)
        ordered = get_policy(booking_type.assignment_policy).order(self.db, booking_type, host_ids, now)

        appointment = None
        for host_id in ordered:
            appointment = self._insert_if_free(
                Appointment(
                    agency_id=booking_type.agency_id,
                    booking_type_id=booking_type.id,
                    host_user_id=host_id,
                    guest_name=guest_name,
                    guest_email=guest_email,
                    guest_phone=guest_phone,
                    guest_company=guest_company,
                    notes=notes,
                    start_time=start,
                    end_time=end,
                    timezone=timezone,
                    status=SCHEDULED,
                    created_at=now,
                )
            )
            if appointment is not None:
                break

        if appointment is None:
            logger.info('Slot %s for booking type %s is taken for every host', start, booking_type_id)
            raise SlotTaken()

        logger.info('Created appointment %s for host %s at %s', appointment.id, appointment.host_user_id, start)
        self._sync_created(appointment)
        return appointment

    def reschedule(
        self,
        appointment_id: int,
        new_start_time: datetime,
        timezone: Optional[str] = None,
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        new_start = to_utc(new_start_time)

        with host_lock(appointment.host_user_id):
            try:
                self._lock_host(appointment.host_user_id)
                self.db.refresh(appointment)
                now = self.clock()
                self._ensure_mutable(appointment, now)

                if new_start <= now:
                    raise InvalidSlot('The new time must be in the future.')
                if not is_offerable_start(self.db, appointment.booking_type, new_start, now):
                    raise InvalidSlot()

                # duration may have changed since booking
                new_end = new_start + timedelta(minutes=appointment.booking_type.duration)

                if not is_host_free(
                    self.db,
                    appointment.host_user_id,
                    new_start,
                    new_end,
                    exclude_appointment_id=appointment.id,
                ):
                    raise SlotTaken()

                appointment.start_time = new_start
                appointment.end_time = new_end
                if timezone:
                    appointment.timezone = timezone
                appointment.rescheduled_at = now
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(appointment)
        logger.info('Rescheduled appointment %s to %s', appointment.id, appointment.start_time)

        host = self.db.get(User, appointment.host_user_id)
        if host is not None:
            if appointment.meeting_id:
                self.dispatcher.run(
                    f'Video meeting update for appointment {appointment.id}',
                    self.video_sink.update_meeting,
                    host,
                    appointment.meeting_id,
                    appointment,
                )
            if appointment.external_calendar_event_id:
                self.dispatcher.run(
                    f'Calendar update for appointment {appointment.id}',
                    self.calendar_sink.update_event,
                    host,
                    appointment.external_calendar_event_id,
                    appointment,
                )
        self.dispatcher.run(
            f'Reschedule notification for appointment {appointment.id}',
            self.notification_sink.booking_rescheduled,
            appointment,
        )
        return appointment

    def cancel(
        self,
        appointment_id: int,
        reason: Optional[str] = None,
        cancelled_by: str = CANCELLED_BY_GUEST,
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id)

        with host_lock(appointment.host_user_id):
            try:
                self._lock_host(appointment.host_user_id)
                self.db.refresh(appointment)
                now = self.clock()
                self._ensure_mutable(appointment, now)

                appointment.status = CANCELLED
                appointment.cancelled_at = now
                appointment.cancelled_by = cancelled_by
                appointment.cancellation_reason = reason or None
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(appointment)
        logger.info('Cancelled appointment %s (by %s)', appointment.id, cancelled_by)

        host = self.db.get(User, appointment.host_user_id)
        if host is not None:
            if appointment.meeting_id:
                self.dispatcher.run(
                    f'Video meeting delete for appointment {appointment.id}',
                    self.video_sink.delete_meeting,
                    host,
                    appointment.meeting_id,
                )
            if appointment.external_calendar_event_id:
                self.dispatcher.run(
                    f'Calendar delete for appointment {appointment.id}',
                    self.calendar_sink.delete_event,
                    host,
                    appointment.external_calendar_event_id,
                )
        self.dispatcher.run(
            f'Cancellation notification for appointment {appointment.id}',
            self.notification_sink.booking_cancelled,
            appointment,
        )
        return appointment

    def confirm(self, appointment_id: int) -> Appointment:
        appointment = self.get_appointment(appointment_id)

        if appointment.status == CANCELLED:
            raise AlreadyTerminal()
        if appointment.status == CONFIRMED:
            return appointment

        try:
            appointment.status = CONFIRMED
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info('Confirmed appointment %s', appointment.id)
        return appointment

    def _ensure_mutable(self, appointment: Appointment, now: datetime) -> None:
        if appointment.status == CANCELLED:
            raise AlreadyTerminal()
        if appointment.start_time <= now:
            raise PastAppointment()

    def _lock_host(self, host_user_id: int) -> None:
        # FOR UPDATE on the host row; a no-op on SQLite
        self.db.query(User.id).filter(User.id == host_user_id).with_for_update().first()

    def _insert_if_free(self, appointment: Appointment) -> Optional[Appointment]:
        host_id = appointment.host_user_id

        with host_lock(host_id):
            try:
                self._lock_host(host_id)
                if not is_host_free(self.db, host_id, appointment.start_time, appointment.end_time):
                    self.db.rollback()
                    return None

                self.db.add(appointment)
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                raise

        self.db.refresh(appointment)
        return appointment

    def _sync_created(self, appointment: Appointment) -> None:
        """
        Attach a meeting and a calendar event to a new appointment.

        Video booking types with meeting creation on try the video provider
        first, then the calendar's own conference, then a placeholder link.
        """
        booking_type = appointment.booking_type
        wants_meeting = bool(booking_type.auto_create_meet) and booking_type.location_type == VIDEO
        host = self.db.get(User, appointment.host_user_id)

        if host is not None:
            if wants_meeting:
                meeting = self.dispatcher.run(
                    f'Video meeting create for appointment {appointment.id}',
                    self.video_sink.create_meeting,
                    host,
                    appointment,
                    booking_type,
                )
                if meeting is not None:
                    appointment.meeting_id = meeting.meeting_id
                    appointment.meeting_link = meeting.join_url

            event = self.dispatcher.run(
                f'Calendar create for appointment {appointment.id}',
                self.calendar_sink.create_event,
                host,
                appointment,
                booking_type,
                with_video=wants_meeting and not appointment.meeting_link,
            )
            if event is not None:
                appointment.external_calendar_event_id = event.event_id
                if event.meeting_link and not appointment.meeting_link:
                    appointment.meeting_link = event.meeting_link

        if wants_meeting and not appointment.meeting_link:
            appointment.meeting_link = fallback_meeting_link()

        if self.db.is_modified(appointment):
            try:
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception('Could not store meeting details for appointment %s', appointment.id)
            self.db.refresh(appointment)

        self.dispatcher.run(
            f'Booking notification for appointment {appointment.id}',
            self.notification_sink.booking_created,
            appointment,
        )

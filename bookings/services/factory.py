"""Wires the appointment service to the configured collaborators."""

from functools import lru_cache

from sqlalchemy.orm import Session

from bookings.core import config
from bookings.integrations.calendar import CalendarEventSink, get_calendar_sink
from bookings.integrations.dispatch import SideEffectDispatcher
from bookings.integrations.notifications import LoggingNotificationSink, NotificationSink
from bookings.integrations.video import VideoMeetingSink, get_video_sink
from bookings.services.appointment_service import AppointmentService


@lru_cache(maxsize=1)
def get_default_calendar_sink() -> CalendarEventSink:
    return get_calendar_sink(config.CALENDAR_PROVIDER)


@lru_cache(maxsize=1)
def get_default_video_sink() -> VideoMeetingSink:
    return get_video_sink(config.VIDEO_PROVIDER)


@lru_cache(maxsize=1)
def get_default_notification_sink() -> NotificationSink:
    return LoggingNotificationSink()


def build_appointment_service(db: Session) -> AppointmentService:
    return AppointmentService(
        db,
        calendar_sink=get_default_calendar_sink(),
        notification_sink=get_default_notification_sink(),
        dispatcher=SideEffectDispatcher(),
        video_sink=get_default_video_sink(),
    )

"""
Calendar event sinks

External calendar providers receive a mirror of each appointment. The
appointment row stays the source of truth; sinks are advisory and may be
"not connected" for a host, which is a no-op success.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from bookings.integrations.video import generate_meeting_code
from bookings.models.appointment import Appointment
from bookings.models.booking_type import BookingType
from bookings.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarEvent:
    event_id: str
    meeting_link: Optional[str] = None


class CalendarEventSink(ABC):
    """Interface every calendar provider adapter implements."""

    @abstractmethod
    def create_event(
        self,
        host: User,
        appointment: Appointment,
        booking_type: BookingType,
        with_video: bool = False,
    ) -> Optional[CalendarEvent]:
        """
        Create the event; returns None when the host has no connected calendar.

        With ``with_video`` the provider attaches its own conference and returns
        the link. Otherwise ``appointment.meeting_link``, if any, is used as the
        event location.
        """

    @abstractmethod
    def update_event(self, host: User, event_id: str, appointment: Appointment) -> bool:
        """Move an existing event to the appointment's current interval."""

    @abstractmethod
    def delete_event(self, host: User, event_id: str) -> bool:
        pass


class NullCalendarSink(CalendarEventSink):
    """No linked calendar: every call succeeds without doing anything."""

    def create_event(self, host, appointment, booking_type, with_video=False):
        return None

    def update_event(self, host, event_id, appointment):
        return True

    def delete_event(self, host, event_id):
        return True


class InMemoryCalendarSink(CalendarEventSink):
    """Keeps events in a dict; for local development."""

    def __init__(self):
        self.events: Dict[str, dict] = {}

    def create_event(self, host, appointment, booking_type, with_video=False):
        event_id = uuid.uuid4().hex
        meeting_link = f'https://meet.google.com/{generate_meeting_code()}' if with_video else None
        self.events[event_id] = {
            'host_id': host.id,
            'summary': f'{booking_type.name} with {appointment.guest_name}',
            'start': appointment.start_time,
            'end': appointment.end_time,
            'timezone': appointment.timezone,
            'attendee': appointment.guest_email,
            'location': meeting_link or appointment.meeting_link,
        }
        logger.info('Created calendar event %s for appointment %s', event_id, appointment.id)
        return CalendarEvent(event_id=event_id, meeting_link=meeting_link)

    def update_event(self, host, event_id, appointment):
        event = self.events.get(event_id)
        if event is None:
            return False
        event.update(start=appointment.start_time, end=appointment.end_time, timezone=appointment.timezone)
        return True

    def delete_event(self, host, event_id):
        return self.events.pop(event_id, None) is not None


def get_calendar_sink(provider: str) -> CalendarEventSink:
    """
    Factory for the configured calendar provider.

    Raises:
        ValueError: if provider is not supported
    """
    if provider in ('', 'none'):
        return NullCalendarSink()
    elif provider == 'memory':
        return InMemoryCalendarSink()
    else:
        raise ValueError(f"Unsupported calendar provider: {provider}")

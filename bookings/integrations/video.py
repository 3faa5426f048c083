"""
Video meeting sinks

Booking types with a video location can have a meeting created for each
appointment. Providers are tried before the calendar's own conference link;
when neither yields a link a placeholder meeting URL is generated.
"""

import logging
import random
import string
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from bookings.core import config
from bookings.models.appointment import Appointment
from bookings.models.booking_type import BookingType
from bookings.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Meeting:
    meeting_id: str
    join_url: str


class VideoMeetingSink(ABC):
    """Interface every video provider adapter implements."""

    @abstractmethod
    def create_meeting(self, host: User, appointment: Appointment, booking_type: BookingType) -> Optional[Meeting]:
        """Create the meeting; returns None when the host has no connected provider."""

    @abstractmethod
    def update_meeting(self, host: User, meeting_id: str, appointment: Appointment) -> bool:
        pass

    @abstractmethod
    def delete_meeting(self, host: User, meeting_id: str) -> bool:
        pass


class NullVideoSink(VideoMeetingSink):
    """No connected provider."""

    def create_meeting(self, host, appointment, booking_type):
        return None

    def update_meeting(self, host, meeting_id, appointment):
        return True

    def delete_meeting(self, host, meeting_id):
        return True


class InMemoryVideoSink(VideoMeetingSink):
    """Keeps meetings in a dict; for local development."""

    def __init__(self, base_url: str = 'https://video.localhost'):
        self.base_url = base_url.rstrip('/')
        self.meetings: Dict[str, dict] = {}

    def create_meeting(self, host, appointment, booking_type):
        meeting_id = uuid.uuid4().hex
        self.meetings[meeting_id] = {
            'host_id': host.id,
            'topic': f'{booking_type.name} with {appointment.guest_name}',
            'start': appointment.start_time,
            'duration': booking_type.duration,
            'timezone': appointment.timezone,
        }
        logger.info('Created video meeting %s for appointment %s', meeting_id, appointment.id)
        return Meeting(meeting_id=meeting_id, join_url=f'{self.base_url}/{meeting_id}')

    def update_meeting(self, host, meeting_id, appointment):
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            return False
        meeting.update(start=appointment.start_time, timezone=appointment.timezone)
        return True

    def delete_meeting(self, host, meeting_id):
        return self.meetings.pop(meeting_id, None) is not None


def generate_meeting_code() -> str:
    """Meet-style ``abc-defg-hij`` code."""
    letters = string.ascii_lowercase
    return '-'.join(''.join(random.choices(letters, k=size)) for size in (3, 4, 3))


def fallback_meeting_link() -> str:
    return f'{config.MEETING_FALLBACK_BASE_URL.rstrip("/")}/{generate_meeting_code()}'


def get_video_sink(provider: str) -> VideoMeetingSink:
    """
    Factory for the configured video provider.

    Raises:
        ValueError: if provider is not supported
    """
    if provider in ('', 'none'):
        return NullVideoSink()
    elif provider == 'memory':
        return InMemoryVideoSink()
    else:
        raise ValueError(f"Unsupported video provider: {provider}")

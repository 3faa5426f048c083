"""Notification sinks for booking lifecycle events."""

import logging
from abc import ABC, abstractmethod

from bookings.models.appointment import Appointment

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Fire-and-forget guest/host notifications. Failures never affect state."""

    @abstractmethod
    def booking_created(self, appointment: Appointment) -> None:
        pass

    @abstractmethod
    def booking_rescheduled(self, appointment: Appointment) -> None:
        pass

    @abstractmethod
    def booking_cancelled(self, appointment: Appointment) -> None:
        pass


class LoggingNotificationSink(NotificationSink):
    def booking_created(self, appointment):
        logger.info('Booking %s created for %s at %s', appointment.id, appointment.guest_email, appointment.start_time)

    def booking_rescheduled(self, appointment):
        logger.info('Booking %s rescheduled to %s', appointment.id, appointment.start_time)

    def booking_cancelled(self, appointment):
        logger.info('Booking %s cancelled by %s', appointment.id, appointment.cancelled_by)

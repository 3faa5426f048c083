"""Typed booking errors and their HTTP translation."""

from fastapi import HTTPException, status


class BookingError(Exception):
    """Base class for user-actionable booking failures."""

    code = 'BOOKING_ERROR'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'The booking request could not be processed.'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(BookingError):
    code = 'NOT_FOUND'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class SlotTaken(BookingError):
    """The requested interval conflicts with an existing appointment."""

    code = 'SLOT_TAKEN'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This time slot is no longer available.'


class PastAppointment(BookingError):
    code = 'PAST_APPOINTMENT'
    default_message = 'Past appointments cannot be changed.'


class AlreadyTerminal(BookingError):
    code = 'ALREADY_CANCELLED'
    default_message = 'Appointment already cancelled.'


class InvalidSlot(BookingError):
    code = 'INVALID_SLOT'
    default_message = 'The requested time is not an available slot.'


class InvalidSchedule(BookingError):
    code = 'INVALID_SCHEDULE'
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = 'The weekly schedule is invalid.'


class NoHostAvailable(BookingError):
    code = 'NO_HOST_AVAILABLE'
    default_message = 'No available host for this booking.'


def to_http_exception(exc: BookingError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={'code': exc.code, 'message': exc.message},
    )

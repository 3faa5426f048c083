from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.dependencies import require_manage_token
from bookings.core import config
from bookings.core.errors import BookingError, to_http_exception
from bookings.database import get_db
from bookings.routes.common import (
    AppointmentResponse,
    database_unavailable,
    ensure_database_ready,
    get_appointment_service,
    to_appointment_response,
)
from bookings.scheduling.availability import get_agency_availability
from bookings.scheduling.calendar_math import format_utc_iso
from bookings.scheduling.schedule import validate_timezone
from bookings.scheduling.slots import available_days, generate_slots
from bookings.services.appointment_service import CANCELLED_BY_GUEST, AppointmentService

router = APIRouter(tags=['public-bookings'], dependencies=[Depends(ensure_database_ready)])

MAX_NOTES_LENGTH = 600
MAX_REASON_LENGTH = 600
MAX_PHONE_LENGTH = 40
MAX_COMPANY_LENGTH = 200


def _normalize_optional_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


def _validate_optional_timezone(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    try:
        return validate_timezone(value.strip())
    except BookingError as exc:
        raise ValueError(exc.message) from exc


class BookingTypeInfoResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    duration: int
    min_notice: int
    max_future_days: int
    timezone: str


class SlotResponse(BaseModel):
    time: str


class DaySlotsResponse(BaseModel):
    date: date
    timezone: str
    slots: list[SlotResponse]


class AvailableDaysResponse(BaseModel):
    month: str
    available_days: list[date]


class CreateBookingRequest(BaseModel):
    guest_name: str
    guest_email: str
    start_time: datetime
    guest_timezone: str | None = None
    notes: str | None = None
    guest_phone: str | None = None
    guest_company: str | None = None
    host_user_id: int | None = None

    @field_validator('guest_name')
    @classmethod
    def validate_guest_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('guest_email')
    @classmethod
    def validate_guest_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized:
            raise ValueError('A valid email is required.')
        return normalized

    @field_validator('guest_timezone')
    @classmethod
    def validate_guest_timezone(cls, value: str | None) -> str | None:
        return _validate_optional_timezone(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_NOTES_LENGTH, 'Notes')

    @field_validator('guest_phone')
    @classmethod
    def validate_guest_phone(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_PHONE_LENGTH, 'Phone')

    @field_validator('guest_company')
    @classmethod
    def validate_guest_company(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_COMPANY_LENGTH, 'Company')


class RescheduleRequest(BaseModel):
    start_time: datetime
    timezone: str | None = None

    @field_validator('timezone')
    @classmethod
    def validate_timezone_name(cls, value: str | None) -> str | None:
        return _validate_optional_timezone(value)


class CancelRequest(BaseModel):
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_REASON_LENGTH, 'Reason')


class CancelResponse(BaseModel):
    success: bool
    appointment: AppointmentResponse


@router.get('/public/{booking_type_id}', response_model=BookingTypeInfoResponse)
def get_booking_type_info(
    booking_type_id: int,
    db: Session = Depends(get_db),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        booking_type = service.get_booking_type(booking_type_id)
        availability = get_agency_availability(db, booking_type.agency_id)

        return BookingTypeInfoResponse(
            id=booking_type.id,
            name=booking_type.name,
            description=booking_type.description,
            duration=booking_type.duration,
            min_notice=booking_type.min_notice,
            max_future_days=booking_type.max_future_days,
            timezone=availability.timezone if availability else config.DEFAULT_TIMEZONE,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/public/{booking_type_id}/slots', response_model=DaySlotsResponse)
def list_available_slots(
    booking_type_id: int,
    slot_date: date = Query(..., alias='date'),
    host_user_id: int | None = Query(None, alias='host'),
    db: Session = Depends(get_db),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        booking_type = service.get_booking_type(booking_type_id)
        availability = get_agency_availability(db, booking_type.agency_id)
        slots = generate_slots(db, booking_type, slot_date, host_user_id=host_user_id)

        return DaySlotsResponse(
            date=slot_date,
            timezone=availability.timezone if availability else config.DEFAULT_TIMEZONE,
            slots=[SlotResponse(time=format_utc_iso(slot.start)) for slot in slots],
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/public/{booking_type_id}/days', response_model=AvailableDaysResponse)
def list_available_days(
    booking_type_id: int,
    month: str = Query(..., pattern=r'^\d{4}-\d{2}$'),
    host_user_id: int | None = Query(None, alias='host'),
    db: Session = Depends(get_db),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        booking_type = service.get_booking_type(booking_type_id)
        days = available_days(db, booking_type, month, host_user_id=host_user_id)

        return AvailableDaysResponse(month=month, available_days=days)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Month must be formatted as YYYY-MM.',
        ) from exc
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/public/{booking_type_id}', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_type_id: int,
    data: CreateBookingRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        appointment = service.create_booking(
            booking_type_id,
            data.start_time,
            guest_name=data.guest_name,
            guest_email=data.guest_email,
            guest_timezone=data.guest_timezone,
            notes=data.notes,
            guest_phone=data.guest_phone,
            guest_company=data.guest_company,
            host_user_id=data.host_user_id,
        )
        return to_appointment_response(appointment, include_manage_token=True)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get(
    '/manage/{appointment_id}',
    response_model=AppointmentResponse,
    dependencies=[Depends(require_manage_token)],
)
def get_managed_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return to_appointment_response(service.get_appointment(appointment_id))
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put(
    '/manage/{appointment_id}',
    response_model=AppointmentResponse,
    dependencies=[Depends(require_manage_token)],
)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        appointment = service.reschedule(appointment_id, data.start_time, timezone=data.timezone)
        return to_appointment_response(appointment)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post(
    '/manage/{appointment_id}/cancel',
    response_model=CancelResponse,
    dependencies=[Depends(require_manage_token)],
)
def cancel_appointment(
    appointment_id: int,
    data: CancelRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        appointment = service.cancel(appointment_id, reason=data.reason, cancelled_by=CANCELLED_BY_GUEST)
        return CancelResponse(success=True, appointment=to_appointment_response(appointment))
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

from datetime import datetime

from fastapi import Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.jwt_handler import create_manage_token
from bookings.database import ensure_appointment_schema, get_db
from bookings.models.appointment import Appointment
from bookings.scheduling.calendar_math import format_utc_iso
from bookings.services.appointment_service import AppointmentService
from bookings.services.factory import build_appointment_service

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    return build_appointment_service(db)


class AppointmentResponse(BaseModel):
    id: int
    booking_type_id: int
    booking_type_name: str | None = None
    host_user_id: int
    guest_name: str
    guest_email: str
    guest_phone: str | None = None
    guest_company: str | None = None
    start_time: str
    end_time: str
    timezone: str
    status: str
    notes: str | None = None
    rescheduled_at: str | None = None
    cancelled_at: str | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    meeting_link: str | None = None
    manage_token: str | None = None


def _iso_or_none(value: datetime | None) -> str | None:
    return format_utc_iso(value) if value else None


def to_appointment_response(appointment: Appointment, include_manage_token: bool = False) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        booking_type_id=appointment.booking_type_id,
        booking_type_name=appointment.booking_type.name if appointment.booking_type else None,
        host_user_id=appointment.host_user_id,
        guest_name=appointment.guest_name,
        guest_email=appointment.guest_email,
        guest_phone=appointment.guest_phone,
        guest_company=appointment.guest_company,
        start_time=format_utc_iso(appointment.start_time),
        end_time=format_utc_iso(appointment.end_time),
        timezone=appointment.timezone,
        status=appointment.status,
        notes=appointment.notes,
        rescheduled_at=_iso_or_none(appointment.rescheduled_at),
        cancelled_at=_iso_or_none(appointment.cancelled_at),
        cancelled_by=appointment.cancelled_by,
        cancellation_reason=appointment.cancellation_reason,
        meeting_link=appointment.meeting_link,
        manage_token=create_manage_token(appointment.id) if include_manage_token else None,
    )

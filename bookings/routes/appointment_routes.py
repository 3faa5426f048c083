from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from bookings.auth.dependencies import get_current_user
from bookings.core.errors import BookingError, NotFound, to_http_exception
from bookings.models.appointment import Appointment
from bookings.models.user import User
from bookings.routes.common import (
    AppointmentResponse,
    database_unavailable,
    ensure_database_ready,
    get_appointment_service,
    to_appointment_response,
)
from bookings.services.appointment_service import CANCELLED_BY_HOST, AppointmentService

router = APIRouter(tags=['appointments'], dependencies=[Depends(ensure_database_ready)])


class HostCancelRequest(BaseModel):
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


def _get_agency_appointment(service: AppointmentService, appointment_id: int, agency_id: int) -> Appointment:
    appointment = service.get_appointment(appointment_id)
    if appointment.agency_id != agency_id:
        raise NotFound('Appointment not found.')
    return appointment


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    host_user_id: int | None = Query(default=None),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    include_cancelled: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        appointments = service.list_appointments(
            current_user.agency_id,
            host_user_id=host_user_id,
            start=start,
            end=end,
            include_cancelled=include_cancelled,
        )
        return [to_appointment_response(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{appointment_id}/confirm', response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        _get_agency_appointment(service, appointment_id, current_user.agency_id)
        return to_appointment_response(service.confirm(appointment_id))
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment_as_host(
    appointment_id: int,
    data: HostCancelRequest,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        _get_agency_appointment(service, appointment_id, current_user.agency_id)
        appointment = service.cancel(appointment_id, reason=data.reason, cancelled_by=CANCELLED_BY_HOST)
        return to_appointment_response(appointment)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

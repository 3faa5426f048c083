from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.dependencies import get_current_user, require_admin
from bookings.core import config
from bookings.core.errors import BookingError, to_http_exception
from bookings.database import get_db
from bookings.models.agency import AgencyAvailability
from bookings.models.user import User
from bookings.routes.common import database_unavailable, ensure_database_ready
from bookings.scheduling.availability import get_agency_availability
from bookings.scheduling.schedule import (
    DEFAULT_WEEKLY_SCHEDULE,
    parse_weekly_schedule,
    serialize_weekly_schedule,
    validate_timezone,
)

router = APIRouter(tags=['availability'], dependencies=[Depends(ensure_database_ready)])


class PeriodModel(BaseModel):
    start: str
    end: str


class AgencyAvailabilityResponse(BaseModel):
    agency_id: int
    timezone: str
    weekly_schedule: dict[str, list[PeriodModel]]


class UpdateAvailabilityRequest(BaseModel):
    timezone: str | None = None
    weekly_schedule: dict[str, list[PeriodModel]] | None = None

    @field_validator('timezone')
    @classmethod
    def validate_timezone_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            return validate_timezone(value.strip())
        except BookingError as exc:
            raise ValueError(exc.message) from exc


def _to_response(availability: AgencyAvailability) -> AgencyAvailabilityResponse:
    schedule = serialize_weekly_schedule(parse_weekly_schedule(availability.weekly_schedule))
    return AgencyAvailabilityResponse(
        agency_id=availability.agency_id,
        timezone=availability.timezone,
        weekly_schedule=schedule,
    )


@router.get('', response_model=AgencyAvailabilityResponse)
def get_availability(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        availability = get_agency_availability(db, current_user.agency_id)

        if availability is None:
            availability = AgencyAvailability(
                agency_id=current_user.agency_id,
                timezone=config.DEFAULT_TIMEZONE,
                weekly_schedule=DEFAULT_WEEKLY_SCHEDULE,
            )
            db.add(availability)
            db.commit()
            db.refresh(availability)

        return _to_response(availability)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('', response_model=AgencyAvailabilityResponse)
def update_availability(
    data: UpdateAvailabilityRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        schedule = None
        if data.weekly_schedule is not None:
            raw = {day: [period.model_dump() for period in periods] for day, periods in data.weekly_schedule.items()}
            schedule = serialize_weekly_schedule(parse_weekly_schedule(raw, validate=True))

        availability = get_agency_availability(db, current_user.agency_id)
        if availability is None:
            availability = AgencyAvailability(
                agency_id=current_user.agency_id,
                timezone=data.timezone or config.DEFAULT_TIMEZONE,
                weekly_schedule=schedule if schedule is not None else {},
            )
            db.add(availability)
        else:
            if data.timezone is not None:
                availability.timezone = data.timezone
            if schedule is not None:
                availability.weekly_schedule = schedule

        db.commit()
        db.refresh(availability)

        return _to_response(availability)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

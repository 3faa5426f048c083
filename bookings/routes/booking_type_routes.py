from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.dependencies import get_current_user, require_admin
from bookings.database import get_db
from bookings.models.booking_type import (
    ASSIGNMENT_POLICIES,
    FIRST_AVAILABLE,
    LOCATION_TYPES,
    VIDEO,
    BookingType,
    BookingTypeHost,
)
from bookings.models.user import User
from bookings.routes.common import database_unavailable, ensure_database_ready

router = APIRouter(tags=['booking-types'], dependencies=[Depends(ensure_database_ready)])

NULLABLE_FIELDS = {'description', 'specific_user_id'}


def _validate_policy(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in ASSIGNMENT_POLICIES:
        raise ValueError('Invalid assignment policy.')
    return normalized


def _validate_location_type(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in LOCATION_TYPES:
        raise ValueError('Invalid location type.')
    return normalized


class BookingTypeResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    duration: int
    buffer_before: int
    buffer_after: int
    min_notice: int
    max_future_days: int
    is_active: bool
    specific_user_id: int | None = None
    assignment_policy: str
    assigned_user_ids: list[int]
    location_type: str
    auto_create_meet: bool


class CreateBookingTypeRequest(BaseModel):
    name: str
    description: str | None = None
    duration: int = Field(default=30, gt=0, le=24 * 60)
    buffer_before: int = Field(default=0, ge=0)
    buffer_after: int = Field(default=15, ge=0)
    min_notice: int = Field(default=24, ge=0)
    max_future_days: int = Field(default=60, gt=0)
    is_active: bool = True
    specific_user_id: int | None = None
    assignment_policy: str = FIRST_AVAILABLE
    assigned_user_ids: list[int] = Field(default_factory=list)
    location_type: str = VIDEO
    auto_create_meet: bool = False

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('assignment_policy')
    @classmethod
    def validate_assignment_policy(cls, value: str) -> str:
        return _validate_policy(value)

    @field_validator('location_type')
    @classmethod
    def validate_location_type(cls, value: str) -> str:
        return _validate_location_type(value)


class UpdateBookingTypeRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    duration: int | None = Field(default=None, gt=0, le=24 * 60)
    buffer_before: int | None = Field(default=None, ge=0)
    buffer_after: int | None = Field(default=None, ge=0)
    min_notice: int | None = Field(default=None, ge=0)
    max_future_days: int | None = Field(default=None, gt=0)
    is_active: bool | None = None
    specific_user_id: int | None = None
    assignment_policy: str | None = None
    assigned_user_ids: list[int] | None = None
    location_type: str | None = None
    auto_create_meet: bool | None = None

    @field_validator('assignment_policy')
    @classmethod
    def validate_assignment_policy(cls, value: str | None) -> str | None:
        return _validate_policy(value)

    @field_validator('location_type')
    @classmethod
    def validate_location_type(cls, value: str | None) -> str | None:
        return _validate_location_type(value)


def _to_response(booking_type: BookingType) -> BookingTypeResponse:
    return BookingTypeResponse(
        id=booking_type.id,
        name=booking_type.name,
        description=booking_type.description,
        duration=booking_type.duration,
        buffer_before=booking_type.buffer_before,
        buffer_after=booking_type.buffer_after,
        min_notice=booking_type.min_notice,
        max_future_days=booking_type.max_future_days,
        is_active=booking_type.is_active,
        specific_user_id=booking_type.specific_user_id,
        assignment_policy=booking_type.assignment_policy,
        assigned_user_ids=[assignment.user_id for assignment in booking_type.assigned_hosts],
        location_type=booking_type.location_type,
        auto_create_meet=booking_type.auto_create_meet,
    )


def _ensure_agency_hosts(db: Session, agency_id: int, user_ids: list[int]) -> None:
    if not user_ids:
        return
    found = {
        user_id
        for (user_id,) in db.query(User.id).filter(User.id.in_(user_ids), User.agency_id == agency_id).all()
    }
    if found != set(user_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Hosts must belong to your agency.',
        )


def _get_agency_booking_type(db: Session, booking_type_id: int, agency_id: int) -> BookingType:
    booking_type = db.query(BookingType).filter(
        BookingType.id == booking_type_id,
        BookingType.agency_id == agency_id,
    ).first()
    if booking_type is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Booking type not found.',
        )
    return booking_type


@router.get('', response_model=list[BookingTypeResponse])
def list_booking_types(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        booking_types = db.query(BookingType).filter(
            BookingType.agency_id == current_user.agency_id,
        ).order_by(BookingType.id.asc()).all()

        return [_to_response(booking_type) for booking_type in booking_types]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{booking_type_id}', response_model=BookingTypeResponse)
def get_booking_type(
    booking_type_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return _to_response(_get_agency_booking_type(db, booking_type_id, current_user.agency_id))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=BookingTypeResponse, status_code=status.HTTP_201_CREATED)
def create_booking_type(
    data: CreateBookingTypeRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        host_ids = list(data.assigned_user_ids)
        if data.specific_user_id is not None:
            host_ids.append(data.specific_user_id)
        _ensure_agency_hosts(db, current_user.agency_id, host_ids)

        booking_type = BookingType(
            agency_id=current_user.agency_id,
            name=data.name,
            description=data.description,
            duration=data.duration,
            buffer_before=data.buffer_before,
            buffer_after=data.buffer_after,
            min_notice=data.min_notice,
            max_future_days=data.max_future_days,
            is_active=data.is_active,
            specific_user_id=data.specific_user_id,
            assignment_policy=data.assignment_policy,
            location_type=data.location_type,
            auto_create_meet=data.auto_create_meet,
        )
        booking_type.assigned_hosts = [
            BookingTypeHost(user_id=user_id, priority=index)
            for index, user_id in enumerate(data.assigned_user_ids)
        ]

        db.add(booking_type)
        db.commit()
        db.refresh(booking_type)

        return _to_response(booking_type)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{booking_type_id}', response_model=BookingTypeResponse)
def update_booking_type(
    booking_type_id: int,
    data: UpdateBookingTypeRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        booking_type = _get_agency_booking_type(db, booking_type_id, current_user.agency_id)
        changes = data.model_dump(exclude_unset=True)

        assigned_user_ids = changes.pop('assigned_user_ids', None)
        host_ids = list(assigned_user_ids or [])
        if changes.get('specific_user_id') is not None:
            host_ids.append(changes['specific_user_id'])
        _ensure_agency_hosts(db, current_user.agency_id, host_ids)

        for field_name, value in changes.items():
            if value is None and field_name not in NULLABLE_FIELDS:
                continue
            setattr(booking_type, field_name, value)

        if assigned_user_ids is not None:
            booking_type.assigned_hosts = [
                BookingTypeHost(user_id=user_id, priority=index)
                for index, user_id in enumerate(assigned_user_ids)
            ]

        db.commit()
        db.refresh(booking_type)

        return _to_response(booking_type)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

import os
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from bookings.database import Base  # noqa: E402
from bookings.models.agency import Agency, AgencyAvailability  # noqa: E402
from bookings.models.appointment import CONFIRMED, Appointment  # noqa: E402
from bookings.models.booking_type import FIRST_AVAILABLE, BookingType, BookingTypeHost  # noqa: E402
from bookings.models.user import User  # noqa: E402

# Thursday; 2026-01-05 is the following Monday.
FIXED_NOW = datetime(2026, 1, 1, 0, 0)

WEEKDAY_SCHEDULE = {
    'monday': [{'start': '09:00', 'end': '17:00'}],
    'tuesday': [{'start': '09:00', 'end': '17:00'}],
    'wednesday': [{'start': '09:00', 'end': '17:00'}],
    'thursday': [{'start': '09:00', 'end': '17:00'}],
    'friday': [{'start': '09:00', 'end': '17:00'}],
    'saturday': [],
    'sunday': [],
}

EVERY_DAY_SCHEDULE = {
    day: [{'start': '09:00', 'end': '17:00'}]
    for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
}


class Factory:
    """Creates committed rows for tests."""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _save(self, instance):
        self.db.add(instance)
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def agency(self, name='Acme Agency'):
        return self._save(Agency(name=name))

    def user(self, agency, role='MEMBER', is_active=True, email=None):
        self._counter += 1
        return self._save(User(
            email=email or f'host{self._counter}@example.com',
            name=f'Host {self._counter}',
            agency_id=agency.id,
            role=role,
            is_active=is_active,
        ))

    def availability(self, agency, schedule=None, timezone='UTC'):
        return self._save(AgencyAvailability(
            agency_id=agency.id,
            timezone=timezone,
            weekly_schedule=WEEKDAY_SCHEDULE if schedule is None else schedule,
        ))

    def booking_type(self, agency, assigned_hosts=(), **overrides):
        values = {
            'name': 'Discovery Call',
            'duration': 30,
            'buffer_before': 0,
            'buffer_after': 15,
            'min_notice': 24,
            'max_future_days': 60,
            'is_active': True,
            'assignment_policy': FIRST_AVAILABLE,
        }
        values.update(overrides)
        booking_type = BookingType(agency_id=agency.id, **values)
        booking_type.assigned_hosts = [
            BookingTypeHost(user_id=host.id, priority=index)
            for index, host in enumerate(assigned_hosts)
        ]
        return self._save(booking_type)

    def appointment(self, booking_type, host, start, status=CONFIRMED, duration=None, created_at=None):
        return self._save(Appointment(
            agency_id=booking_type.agency_id,
            booking_type_id=booking_type.id,
            host_user_id=host.id,
            guest_name='Existing Guest',
            guest_email='existing@example.com',
            start_time=start,
            end_time=start + timedelta(minutes=duration or booking_type.duration),
            timezone='UTC',
            status=status,
            created_at=created_at or FIXED_NOW,
        ))


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'bookings.db'}",
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make(db):
    return Factory(db)


@pytest.fixture
def agency(make):
    return make.agency()


@pytest.fixture
def host(make, agency):
    return make.user(agency, role='ADMIN')

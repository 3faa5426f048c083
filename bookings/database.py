from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from bookings.core import config


def _connect_args(database_url: str) -> dict:
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    echo=config.DATABASE_ECHO,
    connect_args=_connect_args(config.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False

_host_locks: dict[int, Lock] = {}
_host_locks_guard = Lock()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def host_lock(host_user_id: int) -> Iterator[None]:
    """Serialize check-then-write sections for a single host within this process.

    Different hosts get different locks and never wait on each other. Callers
    also take a row lock on the host so other processes serialize on Postgres.
    """
    with _host_locks_guard:
        lock = _host_locks.setdefault(host_user_id, Lock())

    with lock:
        yield


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        table_names = set(inspector.get_table_names())

        if 'appointments' not in table_names:
            _appointment_schema_checked = True
            return

        existing_columns = {
            table_name: {column['name'] for column in inspector.get_columns(table_name)}
            for table_name in ('appointments', 'booking_types')
            if table_name in table_names
        }
        migration_steps = [
            ('appointments', 'notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
            (
                'appointments',
                'external_calendar_event_id',
                'ALTER TABLE appointments ADD COLUMN external_calendar_event_id VARCHAR',
            ),
            ('appointments', 'rescheduled_at', 'ALTER TABLE appointments ADD COLUMN rescheduled_at TIMESTAMP'),
            ('appointments', 'cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR'),
            ('appointments', 'guest_phone', 'ALTER TABLE appointments ADD COLUMN guest_phone VARCHAR'),
            ('appointments', 'guest_company', 'ALTER TABLE appointments ADD COLUMN guest_company VARCHAR'),
            ('appointments', 'meeting_link', 'ALTER TABLE appointments ADD COLUMN meeting_link VARCHAR'),
            ('appointments', 'meeting_id', 'ALTER TABLE appointments ADD COLUMN meeting_id VARCHAR'),
            (
                'booking_types',
                'location_type',
                "ALTER TABLE booking_types ADD COLUMN location_type VARCHAR NOT NULL DEFAULT 'VIDEO'",
            ),
            (
                'booking_types',
                'auto_create_meet',
                'ALTER TABLE booking_types ADD COLUMN auto_create_meet BOOLEAN NOT NULL DEFAULT FALSE',
            ),
        ]

        with engine.begin() as connection:
            for table_name, column_name, statement in migration_steps:
                if table_name in existing_columns and column_name not in existing_columns[table_name]:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_host_range '
                    'ON appointments(host_user_id, start_time, end_time)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_agency_start ON appointments(agency_id, start_time)')
            )

        _appointment_schema_checked = True

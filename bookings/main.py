import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from bookings.core import config
from bookings.database import Base, engine, ensure_appointment_schema
from bookings.models import agency, appointment, booking_type, user  # noqa: F401
from bookings.routes import appointment_routes, availability_routes, booking_type_routes, public_booking_routes

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

config.validate_runtime_config()

app = FastAPI(title='Booking Engine')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Booking Engine API Running'}


app.include_router(public_booking_routes.router, prefix='/bookings')
app.include_router(availability_routes.router, prefix='/bookings/availability')
app.include_router(booking_type_routes.router, prefix='/bookings/types')
app.include_router(appointment_routes.router, prefix='/bookings/appointments')

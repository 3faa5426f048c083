"""Agency and agency availability model definitions."""

from sqlalchemy import JSON, Column, ForeignKey, Integer, String
from bookings.database import Base


class Agency(Base):
    """Tenant that owns booking types, hosts and appointments."""
    __tablename__ = "agencies"

    id = Column(Integer, primary_key=True)
    name = Column(String)


class AgencyAvailability(Base):
    """Recurring weekly schedule for an agency.

    ``weekly_schedule`` maps a lowercase weekday name to a list of
    ``{"start": "HH:MM", "end": "HH:MM"}`` periods in ``timezone``.
    """
    __tablename__ = "agency_availability"

    id = Column(Integer, primary_key=True)
    agency_id = Column(Integer, ForeignKey("agencies.id"), unique=True, nullable=False)
    timezone = Column(String, nullable=False)
    weekly_schedule = Column(JSON, nullable=False, default=dict)

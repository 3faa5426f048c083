"""Appointment model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from bookings.database import Base

SCHEDULED = 'SCHEDULED'
CONFIRMED = 'CONFIRMED'
CANCELLED = 'CANCELLED'
ACTIVE_STATUSES = (SCHEDULED, CONFIRMED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Appointment(Base):
    """A guest booking against one host. Times are naive UTC."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    agency_id = Column(Integer, ForeignKey("agencies.id"), nullable=False)
    booking_type_id = Column(Integer, ForeignKey("booking_types.id"), nullable=False)
    host_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    guest_name = Column(String, nullable=False)
    guest_email = Column(String, nullable=False)
    guest_phone = Column(String)
    guest_company = Column(String)
    notes = Column(String)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    timezone = Column(String, nullable=False)
    status = Column(String, nullable=False, default=SCHEDULED)
    external_calendar_event_id = Column(String)
    meeting_link = Column(String)
    meeting_id = Column(String)
    cancelled_at = Column(DateTime)
    cancelled_by = Column(String)
    cancellation_reason = Column(String)
    rescheduled_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    booking_type = relationship("BookingType", lazy="joined")

"""Booking type model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from bookings.database import Base

FIRST_AVAILABLE = 'FIRST_AVAILABLE'
LEAST_LOADED = 'LEAST_LOADED'
ROUND_ROBIN = 'ROUND_ROBIN'
ASSIGNMENT_POLICIES = (FIRST_AVAILABLE, LEAST_LOADED, ROUND_ROBIN)

VIDEO = 'VIDEO'
PHONE = 'PHONE'
IN_PERSON = 'IN_PERSON'
LOCATION_TYPES = (VIDEO, PHONE, IN_PERSON)


class BookingType(Base):
    """Reusable meeting template offered to guests."""
    __tablename__ = "booking_types"

    id = Column(Integer, primary_key=True)
    agency_id = Column(Integer, ForeignKey("agencies.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
    duration = Column(Integer, nullable=False, default=30)
    buffer_before = Column(Integer, nullable=False, default=0)
    buffer_after = Column(Integer, nullable=False, default=15)
    min_notice = Column(Integer, nullable=False, default=24)
    max_future_days = Column(Integer, nullable=False, default=60)
    is_active = Column(Boolean, nullable=False, default=True)
    specific_user_id = Column(Integer, ForeignKey("users.id"))
    assignment_policy = Column(String, nullable=False, default=FIRST_AVAILABLE)
    location_type = Column(String, nullable=False, default=VIDEO)
    auto_create_meet = Column(Boolean, nullable=False, default=False)

    assigned_hosts = relationship(
        "BookingTypeHost",
        order_by="BookingTypeHost.priority",
        cascade="all, delete-orphan",
        back_populates="booking_type",
    )


class BookingTypeHost(Base):
    """Explicit host assignment for a booking type; lower priority comes first."""
    __tablename__ = "booking_type_hosts"

    id = Column(Integer, primary_key=True)
    booking_type_id = Column(Integer, ForeignKey("booking_types.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    priority = Column(Integer, nullable=False, default=0)

    booking_type = relationship("BookingType", back_populates="assigned_hosts")

"""User model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from bookings.database import Base

OPERATIONAL_ROLES = ('SUPER_ADMIN', 'ADMIN', 'MANAGER', 'MEMBER')
ADMIN_ROLES = ('SUPER_ADMIN', 'ADMIN')


class User(Base):
    """An agency member who can host appointments."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    agency_id = Column(Integer, ForeignKey("agencies.id"), index=True)
    role = Column(String, default='MEMBER')
    is_active = Column(Boolean, default=True)

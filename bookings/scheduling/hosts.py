"""
Host Selector

Computes the hosts eligible for a booking type and the order in which they
are offered work. Conflict checks and assignment always use the same list;
the first free host in policy order is the one assigned.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from bookings.core.errors import NotFound
from bookings.models.appointment import ACTIVE_STATUSES, Appointment
from bookings.models.booking_type import FIRST_AVAILABLE, LEAST_LOADED, ROUND_ROBIN, BookingType
from bookings.models.user import OPERATIONAL_ROLES, User


def eligible_host_ids(db: Session, booking_type: BookingType) -> List[int]:
    """
    Specific host if set, else assigned hosts by priority, else every active
    agency member holding an operational role.
    """
    if booking_type.specific_user_id:
        return [booking_type.specific_user_id]

    if booking_type.assigned_hosts:
        return [assignment.user_id for assignment in booking_type.assigned_hosts]

    rows = db.query(User.id).filter(
        User.agency_id == booking_type.agency_id,
        User.is_active.is_(True),
        User.role.in_(OPERATIONAL_ROLES),
    ).order_by(User.id.asc()).all()
    return [user_id for (user_id,) in rows]


def host_ids_for_request(db: Session, booking_type: BookingType, host_user_id: Optional[int] = None) -> List[int]:
    """
    Eligible hosts, narrowed to ``host_user_id`` when a booking page is
    scoped to one host.

    Raises:
        NotFound: if the host is not an active operational member of the
            booking type's agency, or is excluded by the booking type
    """
    host_ids = eligible_host_ids(db, booking_type)
    if host_user_id is None:
        return host_ids

    host = db.get(User, host_user_id)
    if (
        host is None
        or host.agency_id != booking_type.agency_id
        or not host.is_active
        or host.role not in OPERATIONAL_ROLES
        or host_user_id not in host_ids
    ):
        raise NotFound('Host not found.')
    return [host_user_id]


class HostSelectionPolicy(ABC):
    """Orders eligible hosts; assignment takes the first free one."""

    name = ''

    @abstractmethod
    def order(
        self,
        db: Session,
        booking_type: BookingType,
        host_ids: Sequence[int],
        now: datetime,
    ) -> List[int]:
        pass

    def select(
        self,
        ordered_host_ids: Sequence[int],
        is_free: Callable[[int], bool],
    ) -> Optional[int]:
        for host_id in ordered_host_ids:
            if is_free(host_id):
                return host_id
        return None


class FirstAvailablePolicy(HostSelectionPolicy):
    """Stable list order. Deterministic, not load balancing."""

    name = FIRST_AVAILABLE

    def order(self, db, booking_type, host_ids, now):
        return list(host_ids)


class LeastLoadedPolicy(HostSelectionPolicy):
    """Hosts with the fewest upcoming active appointments first."""

    name = LEAST_LOADED

    def order(self, db, booking_type, host_ids, now):
        if not host_ids:
            return []

        rows = db.query(Appointment.host_user_id, func.count(Appointment.id)).filter(
            Appointment.host_user_id.in_(list(host_ids)),
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_time >= now,
        ).group_by(Appointment.host_user_id).all()
        counts = dict(rows)

        return sorted(host_ids, key=lambda host_id: counts.get(host_id, 0))


class RoundRobinPolicy(HostSelectionPolicy):
    """Start after the host who most recently got this booking type."""

    name = ROUND_ROBIN

    def order(self, db, booking_type, host_ids, now):
        host_ids = list(host_ids)
        if not host_ids:
            return []

        last = db.query(Appointment.host_user_id).filter(
            Appointment.booking_type_id == booking_type.id,
            Appointment.host_user_id.in_(host_ids),
        ).order_by(Appointment.created_at.desc(), Appointment.id.desc()).first()

        if last is None:
            return host_ids

        pivot = host_ids.index(last[0]) + 1
        return host_ids[pivot:] + host_ids[:pivot]


_POLICIES: Dict[str, HostSelectionPolicy] = {
    FIRST_AVAILABLE: FirstAvailablePolicy(),
    LEAST_LOADED: LeastLoadedPolicy(),
    ROUND_ROBIN: RoundRobinPolicy(),
}


def get_policy(name: Optional[str]) -> HostSelectionPolicy:
    """
    Resolve a policy by name; an empty name means first available.

    Raises:
        ValueError: if the name is not a known policy
    """
    policy = _POLICIES.get(name or FIRST_AVAILABLE)
    if policy is None:
        raise ValueError(f"Unsupported host selection policy: {name}")
    return policy

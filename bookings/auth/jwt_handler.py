from datetime import datetime, timedelta, timezone

import jwt

from bookings.core import config


def create_access_token(subject: str, agency_id: int | None = None, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {"sub": subject, "exp": issued_at + timedelta(minutes=expire_minutes), "iat": issued_at}
    if agency_id is not None:
        payload["agency_id"] = agency_id
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])


MANAGE_TOKEN_PURPOSE = "manage"


def create_manage_token(appointment_id: int, expires_days: int | None = None) -> str:
    """Token a guest presents to view, reschedule or cancel one appointment."""
    issued_at = datetime.now(timezone.utc)
    expire_days = expires_days or config.MANAGE_TOKEN_EXPIRES_DAYS
    payload = {
        "sub": str(appointment_id),
        "purpose": MANAGE_TOKEN_PURPOSE,
        "exp": issued_at + timedelta(days=expire_days),
        "iat": issued_at,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_manage_token(token: str) -> int:
    """
    Appointment id the token grants access to.

    Raises:
        jwt.InvalidTokenError: if the token is malformed, expired, or not a manage token
    """
    payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    if payload.get("purpose") != MANAGE_TOKEN_PURPOSE:
        raise jwt.InvalidTokenError("Not a manage token.")
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise jwt.InvalidTokenError("Manage token has no appointment.") from exc

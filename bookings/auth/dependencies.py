import jwt
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from bookings.auth import jwt_handler
from bookings.core.errors import NotFound, to_http_exception
from bookings.database import get_db
from bookings.models.user import ADMIN_ROLES, User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email, User.is_active.is_(True)).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if user.agency_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No agency found")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in ADMIN_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return current_user


def require_manage_token(appointment_id: int, token: str = Query(..., min_length=1)) -> int:
    # a bad token looks exactly like a missing appointment
    try:
        token_appointment_id = jwt_handler.decode_manage_token(token)
    except jwt.InvalidTokenError as exc:
        raise to_http_exception(NotFound("Appointment not found.")) from exc

    if token_appointment_id != appointment_id:
        raise to_http_exception(NotFound("Appointment not found."))
    return appointment_id

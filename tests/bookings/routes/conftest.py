import pytest
from fastapi.testclient import TestClient

from bookings.auth import jwt_handler
from bookings.database import get_db
from bookings.main import app
from bookings.routes.common import ensure_database_ready


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[ensure_database_ready] = lambda: None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def build(user) -> dict:
        token = jwt_handler.create_access_token(user.email, agency_id=user.agency_id)
        return {'Authorization': f'Bearer {token}'}

    return build

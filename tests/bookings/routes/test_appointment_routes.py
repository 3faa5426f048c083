from datetime import datetime, timedelta, timezone

import pytest

from bookings.models.appointment import SCHEDULED

START = (datetime.now(timezone.utc) + timedelta(days=3)).replace(tzinfo=None, hour=10, minute=0, second=0, microsecond=0)


@pytest.fixture
def appointment(make, agency, host):
    booking_type = make.booking_type(agency)
    return make.appointment(booking_type, host, START, status=SCHEDULED)


def test_list_appointments_returns_agency_appointments(client, host, appointment, auth_headers) -> None:
    response = client.get('/bookings/appointments', headers=auth_headers(host))

    assert response.status_code == 200
    assert [item['id'] for item in response.json()] == [appointment.id]


def test_list_appointments_filters_by_time_range(client, host, appointment, auth_headers) -> None:
    later = (START + timedelta(days=1)).isoformat()

    response = client.get('/bookings/appointments', headers=auth_headers(host), params={'start': later})

    assert response.json() == []


def test_host_confirms_appointment(client, host, appointment, auth_headers) -> None:
    response = client.post(f'/bookings/appointments/{appointment.id}/confirm', headers=auth_headers(host))

    assert response.status_code == 200
    assert response.json()['status'] == 'CONFIRMED'


def test_host_cancels_appointment(client, host, appointment, auth_headers) -> None:
    response = client.post(
        f'/bookings/appointments/{appointment.id}/cancel',
        headers=auth_headers(host),
        json={'reason': 'Host unavailable'},
    )

    assert response.status_code == 200
    assert response.json()['status'] == 'CANCELLED'
    assert response.json()['cancelled_by'] == 'HOST'
    assert response.json()['cancellation_reason'] == 'Host unavailable'


def test_other_agency_cannot_touch_appointment(client, make, appointment, auth_headers) -> None:
    outsider = make.user(make.agency(name='Other Agency'), role='ADMIN')

    response = client.post(f'/bookings/appointments/{appointment.id}/confirm', headers=auth_headers(outsider))

    assert response.status_code == 404

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from bookings.auth import jwt_handler
from bookings.routes.public_booking_routes import CancelRequest, CreateBookingRequest

EVERY_DAY = {
    day: [{'start': '09:00', 'end': '17:00'}]
    for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
}

TARGET_DATE = (datetime.now(timezone.utc) + timedelta(days=7)).date()


def _iso(hour: int, minute: int = 0) -> str:
    return f'{TARGET_DATE.isoformat()}T{hour:02d}:{minute:02d}:00Z'


@pytest.fixture
def booking_type(make, agency, host):
    make.availability(agency, schedule=EVERY_DAY)
    return make.booking_type(agency, duration=30, buffer_after=15)


def _create(client, booking_type, hour=10, minute=0, **payload):
    body = {'guest_name': 'Jane Guest', 'guest_email': 'jane@example.com', 'start_time': _iso(hour, minute)}
    body.update(payload)
    return client.post(f'/bookings/public/{booking_type.id}', json=body)


def test_create_booking_request_normalizes_fields() -> None:
    request = CreateBookingRequest(
        guest_name=' Jane Guest ',
        guest_email=' JANE@EXAMPLE.COM ',
        start_time=datetime(2026, 1, 5, 9, 0),
        guest_timezone=' ',
        notes='   ',
    )

    assert request.guest_name == 'Jane Guest'
    assert request.guest_email == 'jane@example.com'
    assert request.guest_timezone is None
    assert request.notes is None


@pytest.mark.parametrize(
    'overrides',
    [
        {'guest_name': '   '},
        {'guest_email': 'not-an-email'},
        {'guest_timezone': 'Mars/Olympus_Mons'},
        {'notes': 'x' * 601},
    ],
)
def test_create_booking_request_rejects_invalid_fields(overrides) -> None:
    values = {'guest_name': 'Jane', 'guest_email': 'jane@example.com', 'start_time': datetime(2026, 1, 5, 9, 0)}
    values.update(overrides)

    with pytest.raises(ValidationError):
        CreateBookingRequest(**values)


def test_cancel_request_blank_reason_becomes_none() -> None:
    assert CancelRequest(reason='  ').reason is None


def test_get_booking_type_info_returns_public_fields(client, booking_type) -> None:
    response = client.get(f'/bookings/public/{booking_type.id}')

    assert response.status_code == 200
    assert response.json()['name'] == 'Discovery Call'
    assert response.json()['duration'] == 30
    assert response.json()['timezone'] == 'UTC'


def test_inactive_booking_type_is_not_found(client, make, agency) -> None:
    booking_type = make.booking_type(agency, is_active=False)

    response = client.get(f'/bookings/public/{booking_type.id}')

    assert response.status_code == 404
    assert response.json()['detail']['code'] == 'NOT_FOUND'


def test_list_available_slots_returns_utc_times(client, booking_type) -> None:
    response = client.get(f'/bookings/public/{booking_type.id}/slots', params={'date': TARGET_DATE.isoformat()})

    assert response.status_code == 200
    body = response.json()
    times = [slot['time'] for slot in body['slots']]
    assert body['timezone'] == 'UTC'
    assert times[0] == _iso(9)
    assert times[-1] == _iso(16, 30)
    assert len(times) == 16


def test_list_available_days_includes_scheduled_dates(client, booking_type) -> None:
    month = TARGET_DATE.strftime('%Y-%m')

    response = client.get(f'/bookings/public/{booking_type.id}/days', params={'month': month})

    assert response.status_code == 200
    assert TARGET_DATE.isoformat() in response.json()['available_days']


@pytest.mark.parametrize(('month', 'status_code'), [('2026-13', 400), ('2026-1', 422)])
def test_list_available_days_rejects_malformed_month(client, booking_type, month, status_code) -> None:
    response = client.get(f'/bookings/public/{booking_type.id}/days', params={'month': month})

    assert response.status_code == status_code


def test_create_booking_returns_scheduled_appointment(client, booking_type, host) -> None:
    response = _create(client, booking_type, guest_email='JANE@EXAMPLE.COM', notes='Bring documents')

    assert response.status_code == 201
    body = response.json()
    assert body['status'] == 'SCHEDULED'
    assert body['host_user_id'] == host.id
    assert body['guest_email'] == 'jane@example.com'
    assert body['start_time'] == _iso(10)
    assert body['end_time'] == _iso(10, 30)
    assert body['booking_type_name'] == 'Discovery Call'


def test_booked_slot_is_rejected_and_removed_from_listing(client, booking_type) -> None:
    assert _create(client, booking_type).status_code == 201

    conflict = _create(client, booking_type, guest_email='other@example.com')
    slots = client.get(f'/bookings/public/{booking_type.id}/slots', params={'date': TARGET_DATE.isoformat()})
    times = [slot['time'] for slot in slots.json()['slots']]

    assert conflict.status_code == 409
    assert conflict.json()['detail']['code'] == 'SLOT_TAKEN'
    assert _iso(10) not in times
    assert _iso(10, 30) not in times
    assert _iso(11) in times


def test_create_booking_outside_schedule_is_invalid_slot(client, booking_type) -> None:
    response = _create(client, booking_type, hour=7)

    assert response.status_code == 400
    assert response.json()['detail']['code'] == 'INVALID_SLOT'


def test_manage_flow_reschedules_and_cancels(client, booking_type) -> None:
    created = _create(client, booking_type).json()
    appointment_id = created['id']
    params = {'token': created['manage_token']}

    fetched = client.get(f'/bookings/manage/{appointment_id}', params=params)
    rescheduled = client.put(
        f'/bookings/manage/{appointment_id}',
        params=params,
        json={'start_time': _iso(13), 'timezone': 'Europe/Paris'},
    )
    cancelled = client.post(
        f'/bookings/manage/{appointment_id}/cancel',
        params=params,
        json={'reason': 'Plans changed'},
    )
    repeated = client.post(f'/bookings/manage/{appointment_id}/cancel', params=params, json={})

    assert fetched.status_code == 200
    assert rescheduled.status_code == 200
    assert rescheduled.json()['start_time'] == _iso(13)
    assert rescheduled.json()['timezone'] == 'Europe/Paris'
    assert rescheduled.json()['rescheduled_at'] is not None
    assert cancelled.status_code == 200
    assert cancelled.json()['success'] is True
    assert cancelled.json()['appointment']['status'] == 'CANCELLED'
    assert cancelled.json()['appointment']['cancelled_by'] == 'GUEST'
    assert repeated.status_code == 400
    assert repeated.json()['detail']['code'] == 'ALREADY_CANCELLED'


def test_reschedule_into_taken_slot_returns_conflict(client, booking_type) -> None:
    first = _create(client, booking_type).json()
    _create(client, booking_type, hour=14, guest_email='other@example.com')
    first_id = first['id']
    params = {'token': first['manage_token']}

    response = client.put(f'/bookings/manage/{first_id}', params=params, json={'start_time': _iso(14, 15)})
    fetched = client.get(f'/bookings/manage/{first_id}', params=params)

    assert response.status_code == 409
    assert fetched.json()['start_time'] == _iso(10)


def test_manage_unknown_appointment_is_not_found(client) -> None:
    response = client.get('/bookings/manage/9999', params={'token': jwt_handler.create_manage_token(9999)})

    assert response.status_code == 404
    assert response.json()['detail']['code'] == 'NOT_FOUND'


def test_create_booking_returns_manage_token_and_guest_contact(client, booking_type) -> None:
    response = _create(client, booking_type, guest_phone=' +971 50 123 4567 ', guest_company='Acme Trading')

    assert response.status_code == 201
    body = response.json()
    assert body['guest_phone'] == '+971 50 123 4567'
    assert body['guest_company'] == 'Acme Trading'
    assert body['meeting_link'] is None
    assert jwt_handler.decode_manage_token(body['manage_token']) == body['id']


def test_manage_endpoints_require_a_token(client, booking_type) -> None:
    appointment_id = _create(client, booking_type).json()['id']

    fetched = client.get(f'/bookings/manage/{appointment_id}')
    cancelled = client.post(f'/bookings/manage/{appointment_id}/cancel', json={})

    assert fetched.status_code == 422
    assert cancelled.status_code == 422


@pytest.mark.parametrize(
    'token_for',
    [
        lambda appointment_id: jwt_handler.create_manage_token(appointment_id + 1),
        lambda appointment_id: jwt_handler.create_manage_token(appointment_id) + 'x',
        lambda appointment_id: jwt_handler.create_access_token(str(appointment_id)),
        lambda appointment_id: 'not-a-token',
    ],
)
def test_manage_endpoints_hide_appointment_behind_bad_tokens(client, booking_type, token_for) -> None:
    appointment_id = _create(client, booking_type).json()['id']
    params = {'token': token_for(appointment_id)}

    fetched = client.get(f'/bookings/manage/{appointment_id}', params=params)
    rescheduled = client.put(f'/bookings/manage/{appointment_id}', params=params, json={'start_time': _iso(13)})
    cancelled = client.post(f'/bookings/manage/{appointment_id}/cancel', params=params, json={})

    for response in (fetched, rescheduled, cancelled):
        assert response.status_code == 404
        assert response.json()['detail']['code'] == 'NOT_FOUND'
    still_there = client.get(
        f'/bookings/manage/{appointment_id}',
        params={'token': jwt_handler.create_manage_token(appointment_id)},
    )
    assert still_there.json()['status'] == 'SCHEDULED'
    assert still_there.json()['start_time'] == _iso(10)


def test_reschedule_outside_schedule_is_invalid_slot(client, booking_type) -> None:
    created = _create(client, booking_type).json()

    response = client.put(
        f'/bookings/manage/{created["id"]}',
        params={'token': created['manage_token']},
        json={'start_time': _iso(20)},
    )

    assert response.status_code == 400
    assert response.json()['detail']['code'] == 'INVALID_SLOT'


def test_host_scoped_booking_page(client, make, agency, booking_type, host) -> None:
    colleague = make.user(agency)
    assert _create(client, booking_type, host_user_id=host.id).status_code == 201

    host_slots = client.get(
        f'/bookings/public/{booking_type.id}/slots',
        params={'date': TARGET_DATE.isoformat(), 'host': host.id},
    )
    team_slots = client.get(f'/bookings/public/{booking_type.id}/slots', params={'date': TARGET_DATE.isoformat()})
    colleague_booking = _create(client, booking_type, host_user_id=colleague.id, guest_email='sam@example.com')

    assert _iso(10) not in [slot['time'] for slot in host_slots.json()['slots']]
    assert _iso(10) in [slot['time'] for slot in team_slots.json()['slots']]
    assert colleague_booking.status_code == 201
    assert colleague_booking.json()['host_user_id'] == colleague.id


def test_host_scoped_booking_page_rejects_unknown_host(client, make, booking_type) -> None:
    outsider = make.user(make.agency(name='Other Agency'))
    month = TARGET_DATE.strftime('%Y-%m')

    slots = client.get(
        f'/bookings/public/{booking_type.id}/slots',
        params={'date': TARGET_DATE.isoformat(), 'host': outsider.id},
    )
    days = client.get(f'/bookings/public/{booking_type.id}/days', params={'month': month, 'host': 9999})
    booking = _create(client, booking_type, host_user_id=outsider.id)

    for response in (slots, days, booking):
        assert response.status_code == 404
        assert response.json()['detail']['message'] == 'Host not found.'


def test_video_booking_type_gets_a_meeting_link(client, make, agency, booking_type) -> None:
    video_call = make.booking_type(agency, name='Video Call', location_type='VIDEO', auto_create_meet=True)

    response = _create(client, video_call)

    assert response.status_code == 201
    assert response.json()['meeting_link'].startswith('https://meet.google.com/')

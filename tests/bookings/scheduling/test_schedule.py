from datetime import time

import pytest
import pytz

from bookings.core.errors import InvalidSchedule
from bookings.scheduling.schedule import (
    END_OF_DAY,
    TimePeriod,
    parse_time_of_day,
    parse_weekly_schedule,
    resolve_timezone,
    serialize_weekly_schedule,
    validate_timezone,
)


def test_parse_weekly_schedule_orders_periods_and_fills_missing_days() -> None:
    schedule = parse_weekly_schedule({
        'Monday': [{'start': '14:00', 'end': '18:00'}, {'start': '09:00', 'end': '12:00'}],
    })

    assert schedule['monday'] == [TimePeriod(time(9, 0), time(12, 0)), TimePeriod(time(14, 0), time(18, 0))]
    assert schedule['sunday'] == []
    assert len(schedule) == 7


def test_parse_weekly_schedule_allows_adjacent_periods_when_validating() -> None:
    schedule = parse_weekly_schedule(
        {'tuesday': [{'start': '09:00', 'end': '10:00'}, {'start': '10:00', 'end': '11:00'}]},
        validate=True,
    )

    assert len(schedule['tuesday']) == 2


@pytest.mark.parametrize(
    'raw',
    [
        {'monday': [{'start': '09:00', 'end': '12:00'}, {'start': '11:00', 'end': '13:00'}]},
        {'monday': [{'start': '12:00', 'end': '12:00'}]},
        {'monday': [{'start': '13:00', 'end': '09:00'}]},
        {'funday': [{'start': '09:00', 'end': '12:00'}]},
        {'monday': [{'start': '9am', 'end': '12:00'}]},
        {'monday': [{'start': '09:00'}]},
    ],
)
def test_parse_weekly_schedule_rejects_invalid_input_when_validating(raw) -> None:
    with pytest.raises(InvalidSchedule):
        parse_weekly_schedule(raw, validate=True)


def test_parse_weekly_schedule_skips_malformed_days_when_reading() -> None:
    schedule = parse_weekly_schedule({
        'monday': [{'start': 'late', 'end': '12:00'}],
        'tuesday': [{'start': '09:00', 'end': '12:00'}],
        'funday': [{'start': '09:00', 'end': '12:00'}],
    })

    assert schedule['monday'] == []
    assert schedule['tuesday'] == [TimePeriod(time(9, 0), time(12, 0))]
    assert 'funday' not in schedule


def test_parse_weekly_schedule_accepts_missing_record() -> None:
    assert all(periods == [] for periods in parse_weekly_schedule(None).values())


def test_serialize_weekly_schedule_uses_hh_mm_strings() -> None:
    serialized = serialize_weekly_schedule(parse_weekly_schedule({'friday': [{'start': '08:30', 'end': '12:00'}]}))

    assert serialized['friday'] == [{'start': '08:30', 'end': '12:00'}]
    assert serialized['saturday'] == []


def test_validate_timezone_rejects_unknown_names() -> None:
    assert validate_timezone('Asia/Dubai') == 'Asia/Dubai'

    with pytest.raises(InvalidSchedule):
        validate_timezone('Mars/Olympus_Mons')


def test_resolve_timezone_falls_back_to_utc() -> None:
    assert resolve_timezone('Mars/Olympus_Mons') is pytz.UTC
    assert resolve_timezone(None) is pytz.UTC
    assert resolve_timezone('Europe/Paris').zone == 'Europe/Paris'


def test_midnight_closes_a_period_and_round_trips() -> None:
    schedule = parse_weekly_schedule({'saturday': [{'start': '18:00', 'end': '24:00'}]}, validate=True)

    assert parse_time_of_day('24:00') == END_OF_DAY
    assert schedule['saturday'] == [TimePeriod(time(18, 0), END_OF_DAY)]
    assert serialize_weekly_schedule(schedule)['saturday'] == [{'start': '18:00', 'end': '24:00'}]


def test_midnight_cannot_open_a_period() -> None:
    with pytest.raises(InvalidSchedule):
        parse_weekly_schedule({'saturday': [{'start': '24:00', 'end': '24:00'}]}, validate=True)


def test_other_times_past_the_end_of_day_are_rejected() -> None:
    with pytest.raises(InvalidSchedule):
        parse_time_of_day('24:30')

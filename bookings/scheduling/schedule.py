"""
Weekly schedule value objects

An agency's recurring availability is stored as JSON
(``{"monday": [{"start": "09:00", "end": "18:00"}], ...}``). This module turns
that mapping into typed periods, validating strictly on write and parsing
leniently on read.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, List, Mapping

import pytz

from bookings.core.errors import InvalidSchedule

logger = logging.getLogger(__name__)

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

DEFAULT_WEEKLY_SCHEDULE = {
    'monday': [{'start': '09:00', 'end': '18:00'}],
    'tuesday': [{'start': '09:00', 'end': '18:00'}],
    'wednesday': [{'start': '09:00', 'end': '18:00'}],
    'thursday': [{'start': '09:00', 'end': '18:00'}],
    'friday': [{'start': '09:00', 'end': '18:00'}],
    'saturday': [],
    'sunday': [],
}


# "24:00" closes a period at midnight; time() cannot hold it, so time.max stands in
END_OF_DAY = time.max
END_OF_DAY_LABEL = '24:00'


def format_time_of_day(value: time) -> str:
    if value == END_OF_DAY:
        return END_OF_DAY_LABEL
    return value.strftime('%H:%M')


@dataclass(frozen=True)
class TimePeriod:
    start: time
    end: time

    def to_dict(self) -> Dict[str, str]:
        return {'start': format_time_of_day(self.start), 'end': format_time_of_day(self.end)}


WeeklySchedule = Dict[str, List[TimePeriod]]


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def parse_time_of_day(value: str) -> time:
    try:
        if value.strip() == END_OF_DAY_LABEL:
            return END_OF_DAY
        return datetime.strptime(value.strip(), '%H:%M').time()
    except (AttributeError, ValueError) as exc:
        raise InvalidSchedule(f'Invalid time of day {value!r}; expected HH:MM.') from exc


def parse_weekly_schedule(raw: Mapping[str, Any] | None, validate: bool = False) -> WeeklySchedule:
    """
    Convert the stored mapping into ordered ``TimePeriod`` lists.

    With ``validate`` every period must have ``start < end``, periods within a
    day must not overlap, and unknown weekday keys are rejected. Without it,
    malformed days are skipped and logged so one bad entry cannot take down a
    read path.
    """
    schedule: WeeklySchedule = {day: [] for day in WEEKDAYS}

    for key, periods in (raw or {}).items():
        day = str(key).strip().lower()
        if day not in WEEKDAYS:
            if validate:
                raise InvalidSchedule(f'Unknown weekday {key!r}.')
            continue

        try:
            parsed = [
                TimePeriod(parse_time_of_day(period['start']), parse_time_of_day(period['end']))
                for period in periods or []
            ]
        except (KeyError, TypeError) as exc:
            if validate:
                raise InvalidSchedule(f'Periods for {day} must have start and end.') from exc
            logger.warning('Skipping malformed schedule for %s', day)
            continue
        except InvalidSchedule:
            if validate:
                raise
            logger.warning('Skipping malformed schedule for %s', day)
            continue

        parsed.sort(key=lambda period: period.start)
        if validate:
            _validate_day(day, parsed)
        schedule[day] = parsed

    return schedule


def _validate_day(day: str, periods: List[TimePeriod]) -> None:
    previous = None
    for period in periods:
        if period.start >= period.end:
            raise InvalidSchedule(f'Period {period.to_dict()} on {day} must start before it ends.')
        if previous is not None and period.start < previous.end:
            raise InvalidSchedule(f'Periods on {day} overlap.')
        previous = period


def serialize_weekly_schedule(schedule: WeeklySchedule) -> Dict[str, List[Dict[str, str]]]:
    return {day: [period.to_dict() for period in schedule.get(day, [])] for day in WEEKDAYS}


def validate_timezone(name: str) -> str:
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError as exc:
        raise InvalidSchedule(f'Unknown timezone {name!r}.') from exc
    return name


def resolve_timezone(name: str | None) -> pytz.tzinfo.BaseTzInfo:
    """Timezone for reads; unknown names fall back to UTC."""
    try:
        return pytz.timezone(name or 'UTC')
    except pytz.UnknownTimeZoneError:
        logger.warning("Invalid timezone '%s', using UTC", name)
        return pytz.UTC

"""
Time calculations for viewing scheduling.

Everything in here is a pure function of its arguments: slot generation,
conflict filtering and window checks never touch the database or the clock
(callers pass ``now`` explicitly), so identical inputs give identical output.

All instants are timezone-aware UTC. Availability windows are wall-clock
times in the agent's zone and are resolved to instants per calendar day.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from ...config import DEFAULT_BUFFER_MINUTES, DEFAULT_TIMEZONE, DEFAULT_VIEWING_DURATION_MINUTES
from ...models_viewing import ACTIVE_STATUSES
from ...shared.validators import is_valid_time_string, is_valid_timezone
from .errors import ValidationError
from .schemas import TimeSlot

MAX_MINUTES = 24 * 60


def ensure_utc(value: datetime) -> datetime:
    """Normalize to aware UTC; naive datetimes are taken to already be UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def _slot_field(slot, camel: str, snake: str):
    if isinstance(slot, dict):
        return slot.get(camel, slot.get(snake))
    return getattr(slot, snake, None)


def validate_availability(
    timezone_name: str,
    slots: Iterable,
    viewing_duration_minutes: int,
    buffer_minutes: int,
) -> list[dict]:
    """
    Validate availability settings and return the slots as a sorted,
    de-duplicated list of ``{"dayOfWeek", "startTime", "endTime"}`` dicts.

    Raises:
        ValidationError: on the first invalid field
    """
    if not timezone_name:
        raise ValidationError("Timezone is required")
    if not is_valid_timezone(timezone_name):
        raise ValidationError(f"Unknown timezone: {timezone_name}")

    if not isinstance(viewing_duration_minutes, int) or not (
        1 <= viewing_duration_minutes <= MAX_MINUTES
    ):
        raise ValidationError("Viewing duration must be between 1 and 1440 minutes")
    if not isinstance(buffer_minutes, int) or not (0 <= buffer_minutes <= MAX_MINUTES):
        raise ValidationError("Buffer must be between 0 and 1440 minutes")

    slots = list(slots or [])
    if not slots:
        raise ValidationError("At least one availability slot is required")

    normalized = set()
    for slot in slots:
        day = _slot_field(slot, "dayOfWeek", "day_of_week")
        start = _slot_field(slot, "startTime", "start_time")
        end = _slot_field(slot, "endTime", "end_time")

        if not isinstance(day, int) or isinstance(day, bool) or not (0 <= day <= 6):
            raise ValidationError("Invalid dayOfWeek (must be 0-6)")
        if not is_valid_time_string(start) or not is_valid_time_string(end):
            raise ValidationError("Invalid time format (must be HH:mm)")
        # Zero-padded HH:mm strings order the same way as the times they encode
        if start >= end:
            raise ValidationError("Start time must be before end time")

        normalized.add((day, start, end))

    return [
        {"dayOfWeek": day, "startTime": start, "endTime": end}
        for day, start, end in sorted(normalized)
    ]


def agent_zone(availability) -> ZoneInfo:
    return ZoneInfo(availability.timezone or DEFAULT_TIMEZONE)


def viewing_duration(availability) -> int:
    if availability.viewing_duration_minutes is None:
        return DEFAULT_VIEWING_DURATION_MINUTES
    return availability.viewing_duration_minutes


def buffer_minutes(availability) -> int:
    if availability.buffer_minutes is None:
        return DEFAULT_BUFFER_MINUTES
    return availability.buffer_minutes


def windows_for_day(availability, day: date) -> list[tuple[time, time]]:
    dow = day_of_week(day)
    return [
        (
            parse_hhmm(_slot_field(s, "startTime", "start_time")),
            parse_hhmm(_slot_field(s, "endTime", "end_time")),
        )
        for s in availability.slots or []
        if _slot_field(s, "dayOfWeek", "day_of_week") == dow
    ]


def generate_slots(
    availability,
    range_start: datetime,
    range_end: datetime,
    now: Optional[datetime] = None,
    property_id: Optional[str] = None,
) -> list[TimeSlot]:
    """
    Build the lattice of bookable slots between two instants, ignoring bookings.

    Every local calendar day from range_start's date through range_end's date
    is expanded. Inside each matching window the walk advances by
    duration + buffer and emits [start, start + duration) while the slot
    still ends inside the window. Slots starting at or before ``now`` are
    dropped.
    """
    zone = agent_zone(availability)
    duration = timedelta(minutes=viewing_duration(availability))
    step = duration + timedelta(minutes=buffer_minutes(availability))
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

    first_day = ensure_utc(range_start).astimezone(zone).date()
    last_day = ensure_utc(range_end).astimezone(zone).date()

    starts = set()
    day = first_day
    while day <= last_day:
        for window_start, window_end in windows_for_day(availability, day):
            cursor = datetime.combine(day, window_start)
            limit = datetime.combine(day, window_end)
            while cursor + duration <= limit:
                instant = cursor.replace(tzinfo=zone).astimezone(timezone.utc)
                if instant > now:
                    starts.add(instant)
                cursor += step
        day += timedelta(days=1)

    return [
        TimeSlot(start_time=start, end_time=start + duration, property_id=property_id)
        for start in sorted(starts)
    ]


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: touching endpoints do not overlap"""
    return a_start < b_end and a_end > b_start


def exclusion_interval(booking, availability) -> tuple[datetime, datetime]:
    """[start, start + duration + buffer) removed from bookability by a booking"""
    start = ensure_utc(booking.scheduled_time)
    minutes = booking.duration_minutes
    if minutes is None:
        minutes = viewing_duration(availability)
    return start, start + timedelta(minutes=minutes + buffer_minutes(availability))


def active_exclusions(existing_bookings, availability) -> list[tuple[datetime, datetime]]:
    return [
        exclusion_interval(booking, availability)
        for booking in existing_bookings
        if booking.status in ACTIVE_STATUSES
    ]


def filter_conflicts(candidate_slots, existing_bookings, availability) -> list[TimeSlot]:
    """Drop every candidate slot that overlaps an active booking's exclusion interval"""
    exclusions = active_exclusions(existing_bookings, availability)
    return [
        slot
        for slot in candidate_slots
        if not any(
            overlaps(ensure_utc(slot.start_time), ensure_utc(slot.end_time), start, end)
            for start, end in exclusions
        )
    ]


def falls_within_window(availability, when: datetime) -> bool:
    """True when the local wall-clock start time lies in [window start, window end)"""
    local = ensure_utc(when).astimezone(agent_zone(availability))
    local_time = local.time().replace(tzinfo=None)
    return any(
        start <= local_time < end for start, end in windows_for_day(availability, local.date())
    )


def requested_interval(availability, when: datetime, duration_minutes: Optional[int] = None):
    """[when, when + duration + buffer) that a new booking at ``when`` would occupy"""
    start = ensure_utc(when)
    minutes = duration_minutes if duration_minutes is not None else viewing_duration(availability)
    return start, start + timedelta(minutes=minutes + buffer_minutes(availability))

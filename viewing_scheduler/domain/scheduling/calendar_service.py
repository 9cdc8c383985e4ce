"""
Calendar export
Turns a viewing into an iCalendar (RFC 5545) invitation with the same two
reminders the messaging side sends.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field

from ...config import DEFAULT_VIEWING_DURATION_MINUTES
from .message_builder import format_location
from .time_calculator import ensure_utc

logger = logging.getLogger(__name__)

PRODID = "-//Viewing Scheduler//Property Viewings//EN"
ORGANIZER_EMAIL = "noreply@viewing-scheduler.local"
UID_DOMAIN = "viewing-scheduler.local"


class CalendarEvent(BaseModel):
    title: str
    description: str
    location: str
    start_time: datetime
    end_time: datetime
    organizer_name: str
    organizer_email: str = ORGANIZER_EMAIL
    attendees: list[str] = Field(default_factory=list)
    status: str = "CONFIRMED"
    viewing_id: Optional[str] = None


def escape_ical_text(text: Optional[str]) -> str:
    """Escape backslash, semicolon, comma and newline for TEXT values"""
    if not text:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def format_ical_date(value: datetime) -> str:
    """YYYYMMDDTHHMMSSZ in UTC"""
    return ensure_utc(value).strftime("%Y%m%dT%H%M%SZ")


def fold_line(line: str, limit: int = 75) -> list[str]:
    """Split a content line into octet-limited chunks; continuations start with a space"""
    encoded = line.encode("utf-8")
    if len(encoded) <= limit:
        return [line]

    chunks = []
    current = ""
    size = 0
    for char in line:
        char_size = len(char.encode("utf-8"))
        max_size = limit if not chunks else limit - 1
        if size + char_size > max_size:
            chunks.append(current)
            current, size = "", 0
        current += char
        size += char_size
    chunks.append(current)

    return [chunks[0]] + [f" {chunk}" for chunk in chunks[1:]]


def create_event_from_viewing(viewing) -> CalendarEvent:
    """Build calendar event data from a viewing with property and agent loaded"""
    duration = viewing.duration_minutes or DEFAULT_VIEWING_DURATION_MINUTES
    start = ensure_utc(viewing.scheduled_time)
    location = format_location(viewing.property)

    lines = [
        f"Property Viewing: {viewing.property.project_name}",
        f"Type: {viewing.property.property_type}",
        f"Location: {location}",
        "",
        f"Agent: {viewing.agent.full_name}",
        f"Agent Contact: {viewing.agent.phone_number or viewing.agent.whatsapp_number}",
        "",
        f"Customer: {viewing.customer_name or 'N/A'}",
        f"Customer Phone: {viewing.customer_phone}",
    ]
    if viewing.notes:
        lines += ["", f"Notes: {viewing.notes}"]

    return CalendarEvent(
        title=f"Property Viewing: {viewing.property.project_name}",
        description="\n".join(lines),
        location=location,
        start_time=start,
        end_time=start + timedelta(minutes=duration),
        organizer_name=viewing.agent.full_name,
        status="CANCELLED" if viewing.status == "cancelled" else "CONFIRMED",
        viewing_id=viewing.id,
    )


def generate_ical_event(
    event: CalendarEvent, uid: Optional[str] = None, now: Optional[datetime] = None
) -> str:
    """
    Serialize an event as a VCALENDAR with one VEVENT and two VALARMs.

    The UID is derived from the viewing id when there is one, so a re-export
    updates the same calendar entry instead of creating a new one.
    """
    if uid is None:
        uid = f"{event.viewing_id or uuid.uuid4()}@{UID_DOMAIN}"
    stamp = now or datetime.now(timezone.utc)
    organizer = event.organizer_name.replace('"', "")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{format_ical_date(stamp)}",
        f"DTSTART:{format_ical_date(event.start_time)}",
        f"DTEND:{format_ical_date(event.end_time)}",
        f"SUMMARY:{escape_ical_text(event.title)}",
        f"DESCRIPTION:{escape_ical_text(event.description)}",
        f"LOCATION:{escape_ical_text(event.location)}",
        f"STATUS:{event.status}",
        f'ORGANIZER;CN="{organizer}":mailto:{event.organizer_email}',
    ]

    for attendee in event.attendees:
        lines.append(f"ATTENDEE;RSVP=TRUE:mailto:{attendee}")

    lines += [
        "BEGIN:VALARM",
        "TRIGGER:-P1D",
        "DESCRIPTION:Reminder: Property viewing tomorrow",
        "ACTION:DISPLAY",
        "END:VALARM",
        "BEGIN:VALARM",
        "TRIGGER:-PT2H",
        "DESCRIPTION:Reminder: Property viewing in 2 hours",
        "ACTION:DISPLAY",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]

    folded = [chunk for line in lines for chunk in fold_line(line)]
    logger.debug(f"📆 iCal event generated: uid={uid}, {len(folded)} lines")
    return "\r\n".join(folded) + "\r\n"

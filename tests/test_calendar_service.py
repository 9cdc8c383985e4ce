"""Tests for iCalendar export."""

from tests.conftest import utc
from tests.test_messages import make_viewing
from viewing_scheduler.domain.scheduling.calendar_service import (
    create_event_from_viewing,
    escape_ical_text,
    fold_line,
    generate_ical_event,
)


def test_event_from_viewing():
    event = create_event_from_viewing(make_viewing(notes="Bring ID"))

    assert event.title == "Property Viewing: Palm Hills"
    assert event.location == "90th Street, New Cairo, Cairo"
    assert event.start_time == utc(2026, 1, 15, 8, 30)
    assert event.end_time == utc(2026, 1, 15, 9, 30)
    assert "Agent Contact: +201009998887" in event.description
    assert event.description.endswith("Notes: Bring ID")
    assert event.status == "CONFIRMED"


def test_cancelled_viewing_exports_cancelled_status():
    event = create_event_from_viewing(make_viewing(status="cancelled"))

    assert "STATUS:CANCELLED" in generate_ical_event(event)


def test_ical_document_structure():
    ical = generate_ical_event(create_event_from_viewing(make_viewing()), now=utc(2026, 1, 1, 8))
    lines = ical.split("\r\n")

    assert lines[0] == "BEGIN:VCALENDAR"
    assert ical.endswith("END:VCALENDAR\r\n")
    assert "METHOD:REQUEST" in lines
    assert "UID:v-1@viewing-scheduler.local" in lines
    assert "DTSTAMP:20260101T080000Z" in lines
    assert "DTSTART:20260115T083000Z" in lines
    assert "DTEND:20260115T093000Z" in lines
    assert "TRIGGER:-P1D" in lines
    assert "TRIGGER:-PT2H" in lines
    assert lines.count("BEGIN:VALARM") == 2


def test_lines_are_folded_to_75_octets():
    ical = generate_ical_event(create_event_from_viewing(make_viewing(notes="x" * 300)))

    for line in ical.split("\r\n"):
        assert len(line.encode("utf-8")) <= 75


def test_fold_line_keeps_multibyte_characters_whole():
    line = "DESCRIPTION:" + "معاينة" * 30
    chunks = fold_line(line)

    assert "".join(chunk[1:] if i else chunk for i, chunk in enumerate(chunks)) == line
    assert all(chunk.startswith(" ") for chunk in chunks[1:])


def test_text_escaping():
    assert escape_ical_text("a,b;c\\d\ne") == r"a\,b\;c\\d\ne"
    assert escape_ical_text(None) == ""


def test_explicit_uid_wins():
    ical = generate_ical_event(create_event_from_viewing(make_viewing()), uid="fixed@example")

    assert "UID:fixed@example" in ical.split("\r\n")

"""Tests for bilingual message templates and the confirmation dispatcher."""

from types import SimpleNamespace

import pytest

from tests.conftest import RecordingGateway, utc
from viewing_scheduler.domain.scheduling import message_builder
from viewing_scheduler.domain.scheduling.confirmation_service import ConfirmationService


def make_viewing(**overrides):
    values = {
        "id": "v-1",
        "scheduled_time": utc(2026, 1, 15, 8, 30),
        "duration_minutes": 60,
        "status": "scheduled",
        "customer_name": "Mona",
        "customer_phone": "+201001234567",
        "notes": None,
        "property": SimpleNamespace(
            project_name="Palm Hills",
            property_type="Apartment",
            city="Cairo",
            district="New Cairo",
            address="90th Street",
        ),
        "agent": SimpleNamespace(
            full_name="Omar Hassan",
            phone_number=None,
            whatsapp_number="+201009998887",
            availability=SimpleNamespace(timezone="Africa/Cairo"),
        ),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestFormatting:
    def test_arabic_date_uses_arabic_digits_and_month(self):
        assert message_builder.format_date(utc(2026, 1, 15, 10), "UTC") == "١٥ يناير ٢٠٢٦"

    def test_full_style_adds_weekday(self):
        assert message_builder.format_date(utc(2026, 1, 15, 10), "UTC", "en", "full") == (
            "Thursday, 15 January 2026"
        )
        assert message_builder.format_date(utc(2026, 1, 15, 10), "UTC", "ar", "full").startswith(
            "الخميس"
        )

    def test_mixed_date(self):
        assert message_builder.format_date(utc(2026, 1, 15, 10), "UTC", "mixed") == (
            "15 January 2026 (١٥ يناير ٢٠٢٦)"
        )

    def test_time_is_shown_in_given_zone(self):
        # 08:30 UTC is 10:30 in Cairo
        assert message_builder.format_time(utc(2026, 1, 15, 8, 30), "Africa/Cairo", "en") == "10:30 AM"
        assert message_builder.format_time(utc(2026, 1, 15, 8, 30), "Africa/Cairo") == "١٠:٣٠ ص"
        assert message_builder.format_time(utc(2026, 1, 15, 12, 0), "UTC", "en") == "12:00 PM"
        assert message_builder.format_time(utc(2026, 1, 15, 0, 5), "UTC", "en") == "12:05 AM"

    def test_local_date_can_differ_from_utc_date(self):
        assert message_builder.format_date(utc(2026, 1, 14, 23), "Africa/Cairo", "en") == "15 January 2026"

    def test_location_with_and_without_address(self):
        viewing = make_viewing()
        assert message_builder.format_location(viewing.property) == "90th Street, New Cairo, Cairo"

        viewing.property.address = None
        assert message_builder.format_location(viewing.property) == "New Cairo, Cairo"

    def test_timezone_falls_back_to_default(self):
        viewing = make_viewing(agent=SimpleNamespace(availability=None))

        assert message_builder.viewing_timezone(viewing) == "Africa/Cairo"


class TestTemplates:
    def test_customer_confirmation(self):
        body = message_builder.build_customer_confirmation(make_viewing(notes="Bring ID"))

        assert "Booking Confirmed" in body
        assert "Palm Hills" in body
        assert "١٠:٣٠ ص" in body
        assert "+201009998887" in body
        assert "Bring ID" in body

    def test_agent_notification_without_customer_name(self):
        body = message_builder.build_agent_notification(make_viewing(customer_name=None))

        assert "Not specified" in body
        assert "+201001234567" in body

    def test_reschedule_shows_both_times(self):
        body = message_builder.build_reschedule_confirmation(make_viewing(), utc(2026, 1, 14, 8, 30))

        assert "١٤ يناير ٢٠٢٦" in body
        assert "١٥ يناير ٢٠٢٦" in body

    def test_cancellation_reason_is_optional(self):
        assert "Reason: Travel" in message_builder.build_cancellation_notice(make_viewing(), "Travel")
        assert "Reason" not in message_builder.build_cancellation_notice(make_viewing())

    def test_missing_property_is_rejected(self):
        with pytest.raises(ValueError):
            message_builder.build_customer_confirmation(make_viewing(property=None))

    def test_reminder_kind_picks_its_template(self):
        viewing = make_viewing()

        assert "Viewing Reminder" in message_builder.build_reminder(viewing, "long-lead")
        assert "Urgent Reminder" in message_builder.build_reminder(viewing, "short-lead")

    def test_unknown_reminder_kind_is_rejected(self):
        with pytest.raises(ValueError):
            message_builder.build_reminder(make_viewing(), "mid-lead")


class TestConfirmationService:
    @pytest.mark.asyncio
    async def test_created_goes_to_customer_and_agent(self):
        gateway = RecordingGateway()

        sent = await ConfirmationService(gateway).notify("created", make_viewing())

        assert sent == 2
        assert "Booking Confirmed" in gateway.bodies_to("+201001234567")[0]
        assert "New Viewing Booked" in gateway.bodies_to("+201009998887")[0]

    @pytest.mark.asyncio
    async def test_rescheduled_and_cancelled_go_to_both(self):
        gateway = RecordingGateway()
        service = ConfirmationService(gateway)

        await service.notify("rescheduled", make_viewing(), {"old_time": utc(2026, 1, 14, 8)})
        await service.notify("cancelled", make_viewing(), {"reason": "Sold"})

        assert len(gateway.bodies_to("+201001234567")) == 2
        assert len(gateway.bodies_to("+201009998887")) == 2

    @pytest.mark.asyncio
    async def test_reminder_goes_to_customer_only(self):
        gateway = RecordingGateway()

        await ConfirmationService(gateway).notify("reminder", make_viewing(), {"kind": "short-lead"})

        assert [to for to, _ in gateway.sent] == ["+201001234567"]
        assert "Urgent Reminder" in gateway.sent[0][1]

    @pytest.mark.asyncio
    async def test_reminder_defaults_to_long_lead_text(self):
        gateway = RecordingGateway()
        viewing = make_viewing()

        await ConfirmationService(gateway).notify("reminder", viewing)

        assert gateway.sent == [
            ("+201001234567", message_builder.build_reminder(viewing, "long-lead"))
        ]

    @pytest.mark.asyncio
    async def test_delivery_failures_are_swallowed(self):
        sent = await ConfirmationService(RecordingGateway(fail=True)).notify("created", make_viewing())

        assert sent == 0

    @pytest.mark.asyncio
    async def test_unknown_kind_sends_nothing(self):
        gateway = RecordingGateway()

        assert await ConfirmationService(gateway).notify("archived", make_viewing()) == 0
        assert gateway.sent == []

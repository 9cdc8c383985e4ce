"""Tests for the availability store and slot checks against stored bookings."""

import pytest

from tests.conftest import add_viewing, utc
from viewing_scheduler.domain.scheduling.errors import NotFoundError, ValidationError
from viewing_scheduler.domain.scheduling.schemas import AgentAvailabilityRequest


class TestSetAvailability:
    def test_replaces_whole_record(self, availability_service, agent, monday_morning):
        updated = availability_service.set_availability(
            agent.id,
            AgentAvailabilityRequest(
                timezone="Africa/Cairo",
                slots=[{"dayOfWeek": 2, "startTime": "13:00", "endTime": "17:00"}],
                viewing_duration_minutes=45,
                buffer_minutes=15,
            ),
        )

        assert updated.timezone == "Africa/Cairo"
        assert updated.slots == [{"dayOfWeek": 2, "startTime": "13:00", "endTime": "17:00"}]
        assert updated.viewing_duration_minutes == 45
        assert updated.buffer_minutes == 15

    def test_invalid_input_leaves_previous_record(self, availability_service, agent, monday_morning):
        with pytest.raises(ValidationError):
            availability_service.set_availability(
                agent.id,
                AgentAvailabilityRequest(
                    timezone="UTC",
                    slots=[{"dayOfWeek": 9, "startTime": "09:00", "endTime": "10:00"}],
                ),
            )

        stored = availability_service.get_availability(agent.id)
        assert stored.slots == [{"dayOfWeek": 1, "startTime": "09:00", "endTime": "12:00"}]

    def test_unknown_agent(self, availability_service):
        with pytest.raises(NotFoundError):
            availability_service.set_availability(
                "missing",
                AgentAvailabilityRequest(
                    slots=[{"dayOfWeek": 1, "startTime": "09:00", "endTime": "10:00"}]
                ),
            )

    def test_camel_case_payload_and_legacy_duration_key(self):
        request = AgentAvailabilityRequest.model_validate(
            {
                "timezone": "UTC",
                "slots": [{"dayOfWeek": 1, "startTime": "09:00", "endTime": "10:00"}],
                "viewingDuration": 30,
                "bufferMinutes": 10,
            }
        )

        assert request.viewing_duration_minutes == 30
        assert request.buffer_minutes == 10
        assert request.slots[0].day_of_week == 1

    def test_unset_availability_is_none(self, availability_service, agent):
        assert availability_service.get_availability(agent.id) is None


class TestAvailableSlots:
    def test_no_availability_means_no_slots(self, availability_service, agent):
        assert availability_service.get_available_slots(agent.id, utc(2026, 1, 5), utc(2026, 1, 6)) == []

    def test_start_after_end_rejected(self, availability_service, agent, monday_morning):
        with pytest.raises(ValidationError):
            availability_service.get_available_slots(agent.id, utc(2026, 1, 6), utc(2026, 1, 5))

    def test_existing_booking_removes_slot(
        self, db_session, availability_service, agent, listing, conversation, monday_morning
    ):
        add_viewing(db_session, agent, listing, conversation, utc(2026, 1, 5, 9, 0))

        slots = availability_service.get_available_slots(agent.id, utc(2026, 1, 5), utc(2026, 1, 6))

        assert [s.start_time for s in slots] == [utc(2026, 1, 5, 10, 30)]

    def test_cancelled_booking_frees_slot(
        self, db_session, availability_service, agent, listing, conversation, monday_morning
    ):
        add_viewing(db_session, agent, listing, conversation, utc(2026, 1, 5, 9, 0), status="cancelled")

        slots = availability_service.get_available_slots(agent.id, utc(2026, 1, 5), utc(2026, 1, 6))

        assert len(slots) == 2

    def test_other_agents_bookings_do_not_count(
        self, db_session, availability_service, agent, other_agent, listing, conversation, monday_morning
    ):
        add_viewing(
            db_session, other_agent, listing, conversation, utc(2026, 1, 5, 9, 0)
        )

        slots = availability_service.get_available_slots(agent.id, utc(2026, 1, 5), utc(2026, 1, 6))

        assert len(slots) == 2


class TestIsSlotAvailable:
    def test_unset_availability_is_never_available(self, availability_service, agent):
        assert not availability_service.is_slot_available(agent.id, utc(2026, 1, 5, 9))

    def test_outside_window(self, availability_service, agent, monday_morning):
        assert not availability_service.is_slot_available(agent.id, utc(2026, 1, 5, 12, 0))
        assert not availability_service.is_slot_available(agent.id, utc(2026, 1, 6, 9, 0))

    def test_booking_at_ten_blocks_eleven_but_not_half_past(
        self, db_session, availability_service, agent, listing, conversation, monday_morning
    ):
        add_viewing(db_session, agent, listing, conversation, utc(2026, 1, 5, 10, 0))

        assert not availability_service.is_slot_available(agent.id, utc(2026, 1, 5, 11, 0))
        assert availability_service.is_slot_available(agent.id, utc(2026, 1, 5, 11, 30))

    def test_request_must_not_run_into_later_booking(
        self, db_session, availability_service, agent, listing, conversation, monday_morning
    ):
        add_viewing(db_session, agent, listing, conversation, utc(2026, 1, 5, 10, 30))

        # [09:30, 11:00) overlaps the 10:30 booking
        assert not availability_service.is_slot_available(agent.id, utc(2026, 1, 5, 9, 30))
        # [09:00, 10:30) just touches it
        assert availability_service.is_slot_available(agent.id, utc(2026, 1, 5, 9, 0))

    def test_excluded_viewing_does_not_conflict_with_itself(
        self, db_session, availability_service, agent, listing, conversation, monday_morning
    ):
        viewing = add_viewing(db_session, agent, listing, conversation, utc(2026, 1, 5, 9, 0))

        assert not availability_service.is_slot_available(agent.id, utc(2026, 1, 5, 9, 30))
        assert availability_service.is_slot_available(
            agent.id, utc(2026, 1, 5, 9, 30), exclude_viewing_id=viewing.id
        )

"""Availability service - Agent availability windows, open slots and slot checks"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...models_viewing import AgentAvailability
from .errors import NotFoundError, ValidationError
from .repository import SchedulingRepository
from .schemas import AgentAvailabilityRequest, TimeSlot
from .time_calculator import (
    MAX_MINUTES,
    buffer_minutes,
    ensure_utc,
    exclusion_interval,
    falls_within_window,
    filter_conflicts,
    generate_slots,
    overlaps,
    requested_interval,
    validate_availability,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AvailabilityService:
    """Availability store plus the conflict checks that read it"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.repo = SchedulingRepository()
        self.clock = clock

    def set_availability(self, agent_id: str, data: AgentAvailabilityRequest) -> AgentAvailability:
        """Validate and replace the agent's whole availability"""
        logger.info(f"📅 Setting availability for agent {agent_id}")

        slots = validate_availability(
            data.timezone, data.slots, data.viewing_duration_minutes, data.buffer_minutes
        )

        if not self.repo.get_agent(self.db, agent_id):
            raise NotFoundError("Agent not found")

        availability = self.repo.replace_availability(
            self.db,
            agent_id,
            timezone=data.timezone,
            slots=slots,
            viewing_duration_minutes=data.viewing_duration_minutes,
            buffer_minutes=data.buffer_minutes,
        )
        logger.info(f"✅ Availability updated for agent {agent_id}: {len(slots)} window(s)")
        return availability

    def get_availability(self, agent_id: str) -> Optional[AgentAvailability]:
        availability = self.repo.get_availability(self.db, agent_id)
        if availability is None or not availability.slots:
            return None
        return availability

    def get_available_slots(
        self,
        agent_id: str,
        start_date: datetime,
        end_date: datetime,
        property_id: Optional[str] = None,
    ) -> list[TimeSlot]:
        """Open slots for an agent between two instants, with booked time removed"""
        start_date, end_date = ensure_utc(start_date), ensure_utc(end_date)
        if start_date > end_date:
            raise ValidationError("startDate must be before endDate")

        availability = self.get_availability(agent_id)
        if availability is None:
            logger.warning(f"⚠️ No availability configured for agent {agent_id}")
            return []

        candidates = generate_slots(
            availability, start_date, end_date, now=self.clock(), property_id=property_id
        )
        if not candidates:
            return []

        # Bookings that start up to a full exclusion span earlier can still reach the first slot
        lookback = timedelta(minutes=MAX_MINUTES + buffer_minutes(availability))
        existing = self.repo.get_active_viewings_between(
            self.db,
            agent_id,
            candidates[0].start_time - lookback,
            candidates[-1].end_time,
        )
        available = filter_conflicts(candidates, existing, availability)

        logger.info(
            f"📊 Slots for agent {agent_id}: {len(candidates)} generated, {len(available)} available"
        )
        return available

    def is_slot_available(
        self,
        agent_id: str,
        scheduled_time: datetime,
        property_id: Optional[str] = None,
        exclude_viewing_id: Optional[str] = None,
        duration_minutes: Optional[int] = None,
    ) -> bool:
        """
        Check a single start time for booking or rescheduling.

        The start must fall inside a weekly window, and
        [time, time + duration + buffer) must not overlap the exclusion
        interval of any other active viewing of the agent.
        """
        availability = self.get_availability(agent_id)
        if availability is None:
            return False

        if not falls_within_window(availability, scheduled_time):
            logger.debug(f"Requested time {scheduled_time} is outside agent {agent_id} windows")
            return False

        start, end = requested_interval(availability, scheduled_time, duration_minutes)
        lookback = timedelta(minutes=MAX_MINUTES + buffer_minutes(availability))
        nearby = self.repo.get_active_viewings_between(
            self.db, agent_id, start - lookback, end, exclude_viewing_id=exclude_viewing_id
        )

        for viewing in nearby:
            excl_start, excl_end = exclusion_interval(viewing, availability)
            if overlaps(start, end, excl_start, excl_end):
                logger.debug(
                    f"Requested time {scheduled_time} conflicts with viewing {viewing.id} "
                    f"(property {property_id or 'any'})"
                )
                return False

        return True

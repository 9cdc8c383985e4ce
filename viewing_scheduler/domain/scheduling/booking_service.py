"""Booking service - Viewing lifecycle: book, reschedule, cancel, confirm, complete"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models_viewing import ScheduledViewing
from .availability_service import AvailabilityService
from .confirmation_service import ConfirmationService
from .errors import ConflictError, IllegalStateTransitionError, NotFoundError
from .reminder_service import ReminderService
from .repository import SchedulingRepository
from .schemas import BookViewingRequest
from .time_calculator import ensure_utc, viewing_duration

logger = logging.getLogger(__name__)

# Allowed status changes; reschedule is handled separately and always lands on "scheduled"
TRANSITIONS = {
    "scheduled": {"confirmed", "cancelled", "completed"},
    "confirmed": {"cancelled", "completed"},
    "cancelled": set(),
    "completed": set(),
}

RESCHEDULABLE_STATUSES = ("scheduled", "confirmed")


def sources_of(target: str) -> tuple[str, ...]:
    """Statuses a viewing may move to target from"""
    return tuple(status for status, targets in TRANSITIONS.items() if target in targets)


class BookingService:
    """
    Business logic for the viewing state machine.

    Every mutation locks the agent and the viewing row, validates, then
    writes conditionally on the status it validated. Reminder and
    notification side effects run after the commit; their failures are
    logged and never undo the booking.
    """

    def __init__(
        self,
        db: Session,
        availability_service: Optional[AvailabilityService] = None,
        reminders: Optional[ReminderService] = None,
        notifier: Optional[ConfirmationService] = None,
    ):
        self.db = db
        self.repo = SchedulingRepository()
        self.availability = availability_service or AvailabilityService(db)
        self.reminders = reminders
        self.notifier = notifier

    def _now(self) -> datetime:
        return self.availability.clock()

    def _lock_owned_viewing(self, viewing_id: str, agent_id: str) -> ScheduledViewing:
        """
        Lock the agent, then read the viewing row FOR UPDATE. Status checks
        made after this see the state the write will apply to.
        """
        self.repo.lock_agent(self.db, agent_id)
        viewing = self.repo.get_agent_viewing(self.db, viewing_id, agent_id, for_update=True)
        if not viewing:
            self.db.rollback()
            raise NotFoundError("Viewing not found or does not belong to agent")
        return viewing

    def _check_transition(self, viewing: ScheduledViewing, target: str):
        if target not in TRANSITIONS.get(viewing.status, set()):
            status = viewing.status
            self.db.rollback()
            raise IllegalStateTransitionError(f"Cannot change a {status} viewing to {target}")

    def _apply(self, viewing: ScheduledViewing, expected_statuses, **updates) -> ScheduledViewing:
        """Write only if no other transaction moved the viewing out of expected_statuses"""
        viewing_id = viewing.id
        if not self.repo.update_viewing_if_status(self.db, viewing, expected_statuses, **updates):
            logger.warning(f"⚠️ Viewing {viewing_id} changed status concurrently, update rejected")
            raise IllegalStateTransitionError("Viewing status changed while it was being updated")
        return viewing

    # ------------------------------------------------------------------------
    # Side effects (best effort)
    # ------------------------------------------------------------------------

    async def _schedule_reminders(self, viewing: ScheduledViewing):
        if not self.reminders:
            return
        try:
            await self.reminders.schedule_reminders(
                viewing.id, viewing.scheduled_time, now=self._now()
            )
        except Exception as e:
            logger.error(f"❌ Failed to schedule reminders for viewing {viewing.id}: {str(e)}")

    async def _reschedule_reminders(self, viewing: ScheduledViewing):
        if not self.reminders:
            return
        try:
            await self.reminders.reschedule_reminders(
                viewing.id, viewing.scheduled_time, now=self._now()
            )
        except Exception as e:
            logger.error(f"❌ Failed to reschedule reminders for viewing {viewing.id}: {str(e)}")

    async def _cancel_reminders(self, viewing: ScheduledViewing):
        if not self.reminders:
            return
        try:
            await self.reminders.cancel_reminders(viewing.id)
        except Exception as e:
            logger.error(f"❌ Failed to cancel reminders for viewing {viewing.id}: {str(e)}")

    async def _notify(self, kind: str, viewing: ScheduledViewing, extra: Optional[dict] = None):
        if not self.notifier:
            return
        try:
            await self.notifier.notify(kind, viewing, extra)
        except Exception as e:
            logger.error(f"❌ Failed to send {kind} notifications for viewing {viewing.id}: {e}")

    # ------------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------------

    async def book_viewing(self, agent_id: str, data: BookViewingRequest) -> ScheduledViewing:
        """
        Book a viewing for an agent.

        Raises:
            NotFoundError: property or conversation missing or owned by another agent
            ConflictError: requested time is outside availability or already taken
        """
        scheduled_time = ensure_utc(data.scheduled_time)
        logger.info(
            f"📅 Booking viewing: agent={agent_id}, property={data.property_id}, time={scheduled_time}"
        )

        if not self.repo.get_agent_property(self.db, data.property_id, agent_id):
            raise NotFoundError("Property not found or does not belong to agent")
        if not self.repo.get_agent_conversation(self.db, data.conversation_id, agent_id):
            raise NotFoundError("Conversation not found or does not belong to agent")

        # Check and insert under the agent lock so two requests cannot both win
        if not self.repo.lock_agent(self.db, agent_id):
            self.db.rollback()
            raise NotFoundError("Agent not found")

        if not self.availability.is_slot_available(
            agent_id,
            scheduled_time,
            property_id=data.property_id,
            duration_minutes=data.duration_minutes,
        ):
            self.db.rollback()
            raise ConflictError("Requested time slot is not available")

        duration = data.duration_minutes
        if duration is None:
            duration = viewing_duration(self.availability.get_availability(agent_id))

        viewing = self.repo.create_viewing(
            self.db,
            agent_id=agent_id,
            property_id=data.property_id,
            conversation_id=data.conversation_id,
            customer_phone=data.customer_phone,
            customer_name=data.customer_name,
            scheduled_time=scheduled_time,
            duration_minutes=duration,
            status="scheduled",
            notes=data.notes,
            reminder_sent=False,
        )
        logger.info(f"✅ Viewing booked: {viewing.id} for agent {agent_id}")

        await self._schedule_reminders(viewing)
        await self._notify("created", viewing)
        return viewing

    async def reschedule_viewing(
        self,
        viewing_id: str,
        agent_id: str,
        new_scheduled_time: datetime,
        notes: Optional[str] = None,
    ) -> ScheduledViewing:
        """
        Move a viewing to a new time; status returns to scheduled.

        Raises:
            NotFoundError, IllegalStateTransitionError, ConflictError
        """
        new_scheduled_time = ensure_utc(new_scheduled_time)
        logger.info(f"🔄 Rescheduling viewing {viewing_id} to {new_scheduled_time}")

        viewing = self._lock_owned_viewing(viewing_id, agent_id)
        if viewing.status not in RESCHEDULABLE_STATUSES:
            status = viewing.status
            self.db.rollback()
            raise IllegalStateTransitionError(f"Cannot reschedule a {status} viewing")

        if not self.availability.is_slot_available(
            agent_id,
            new_scheduled_time,
            property_id=viewing.property_id,
            exclude_viewing_id=viewing.id,
            duration_minutes=viewing.duration_minutes,
        ):
            self.db.rollback()
            raise ConflictError("Requested time slot is not available")

        old_time = viewing.scheduled_time
        viewing = self._apply(
            viewing,
            RESCHEDULABLE_STATUSES,
            scheduled_time=new_scheduled_time,
            status="scheduled",
            reminder_sent=False,
            notes=notes or viewing.notes,
        )
        logger.info(f"✅ Viewing {viewing_id} rescheduled from {old_time} to {new_scheduled_time}")

        await self._reschedule_reminders(viewing)
        await self._notify("rescheduled", viewing, {"old_time": old_time})
        return viewing

    async def cancel_viewing(
        self, viewing_id: str, agent_id: str, reason: Optional[str] = None
    ) -> ScheduledViewing:
        logger.info(f"❌ Cancelling viewing {viewing_id}")

        viewing = self._lock_owned_viewing(viewing_id, agent_id)
        if viewing.status == "cancelled":
            self.db.rollback()
            raise IllegalStateTransitionError("Viewing is already cancelled")
        if viewing.status == "completed":
            self.db.rollback()
            raise IllegalStateTransitionError("Cannot cancel a completed viewing")

        notes = viewing.notes
        if reason:
            notes = f"{viewing.notes or ''}\nCancellation reason: {reason}"

        viewing = self._apply(viewing, sources_of("cancelled"), status="cancelled", notes=notes)
        logger.info(f"✅ Viewing {viewing_id} cancelled")

        await self._cancel_reminders(viewing)
        await self._notify("cancelled", viewing, {"reason": reason})
        return viewing

    async def confirm_viewing(self, viewing_id: str, agent_id: str) -> ScheduledViewing:
        """Agent confirms a scheduled viewing; pending reminders stay as they are"""
        viewing = self._lock_owned_viewing(viewing_id, agent_id)
        self._check_transition(viewing, "confirmed")

        viewing = self._apply(viewing, sources_of("confirmed"), status="confirmed")
        logger.info(f"✅ Viewing {viewing_id} confirmed")
        return viewing

    async def complete_viewing(self, viewing_id: str, agent_id: str) -> ScheduledViewing:
        """Mark a viewing as held and drop any reminders still pending"""
        viewing = self._lock_owned_viewing(viewing_id, agent_id)
        self._check_transition(viewing, "completed")

        viewing = self._apply(viewing, sources_of("completed"), status="completed")
        logger.info(f"🏁 Viewing {viewing_id} completed")

        await self._cancel_reminders(viewing)
        return viewing

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------

    def get_viewing_by_id(self, viewing_id: str, agent_id: str) -> Optional[ScheduledViewing]:
        return self.repo.get_agent_viewing(self.db, viewing_id, agent_id)

    def list_viewings(
        self,
        agent_id: str,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        property_id: Optional[str] = None,
    ) -> list[ScheduledViewing]:
        return self.repo.search_viewings(
            self.db,
            agent_id,
            status=status,
            start_date=ensure_utc(start_date) if start_date else None,
            end_date=ensure_utc(end_date) if end_date else None,
            property_id=property_id,
        )

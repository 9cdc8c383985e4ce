"""Scheduling repository - Database operations for availability and viewings"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Agent, Conversation, Property
from ...models_viewing import ACTIVE_STATUSES, AgentAvailability, ScheduledViewing


class SchedulingRepository:
    """Repository for scheduling database operations"""

    # Agents / properties / conversations (read-only)
    @staticmethod
    def get_agent(db: Session, agent_id: str) -> Optional[Agent]:
        return db.query(Agent).filter(Agent.id == agent_id).first()

    @staticmethod
    def lock_agent(db: Session, agent_id: str) -> Optional[Agent]:
        """
        Take a row lock on the agent for the rest of the transaction.
        Serializes availability checks and inserts for the same agent;
        SQLite ignores FOR UPDATE and serializes writers on its own.
        """
        return db.query(Agent).filter(Agent.id == agent_id).with_for_update().first()

    @staticmethod
    def get_agent_property(db: Session, property_id: str, agent_id: str) -> Optional[Property]:
        return (
            db.query(Property)
            .filter(Property.id == property_id, Property.agent_id == agent_id)
            .first()
        )

    @staticmethod
    def get_agent_conversation(
        db: Session, conversation_id: str, agent_id: str
    ) -> Optional[Conversation]:
        return (
            db.query(Conversation)
            .filter(Conversation.id == conversation_id, Conversation.agent_id == agent_id)
            .first()
        )

    # Availability
    @staticmethod
    def get_availability(db: Session, agent_id: str) -> Optional[AgentAvailability]:
        return db.query(AgentAvailability).filter(AgentAvailability.agent_id == agent_id).first()

    @staticmethod
    def replace_availability(
        db: Session,
        agent_id: str,
        timezone: str,
        slots: list[dict],
        viewing_duration_minutes: int,
        buffer_minutes: int,
    ) -> AgentAvailability:
        """Overwrite every field of the agent's availability in one commit"""
        availability = SchedulingRepository.get_availability(db, agent_id)
        if availability is None:
            availability = AgentAvailability(agent_id=agent_id)
            db.add(availability)

        availability.timezone = timezone
        availability.slots = slots
        availability.viewing_duration_minutes = viewing_duration_minutes
        availability.buffer_minutes = buffer_minutes

        db.commit()
        db.refresh(availability)
        return availability

    # Viewings
    @staticmethod
    def get_viewing(db: Session, viewing_id: str) -> Optional[ScheduledViewing]:
        return db.query(ScheduledViewing).filter(ScheduledViewing.id == viewing_id).first()

    @staticmethod
    def get_agent_viewing(
        db: Session, viewing_id: str, agent_id: str, for_update: bool = False
    ) -> Optional[ScheduledViewing]:
        query = db.query(ScheduledViewing).filter(
            ScheduledViewing.id == viewing_id, ScheduledViewing.agent_id == agent_id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_active_viewings_between(
        db: Session,
        agent_id: str,
        start: datetime,
        end: datetime,
        exclude_viewing_id: Optional[str] = None,
    ) -> list[ScheduledViewing]:
        """Active viewings of an agent whose start lies in [start, end]"""
        query = db.query(ScheduledViewing).filter(
            ScheduledViewing.agent_id == agent_id,
            ScheduledViewing.status.in_(ACTIVE_STATUSES),
            ScheduledViewing.scheduled_time >= start,
            ScheduledViewing.scheduled_time <= end,
        )
        if exclude_viewing_id:
            query = query.filter(ScheduledViewing.id != exclude_viewing_id)
        return query.order_by(ScheduledViewing.scheduled_time).all()

    @staticmethod
    def create_viewing(db: Session, **viewing_data) -> ScheduledViewing:
        viewing = ScheduledViewing(**viewing_data)
        db.add(viewing)
        db.commit()
        db.refresh(viewing)
        return viewing

    @staticmethod
    def update_viewing_if_status(
        db: Session, viewing: ScheduledViewing, expected_statuses, **updates
    ) -> bool:
        """
        Conditional update: applies only while the stored status is still one
        of expected_statuses. Returns False (and rolls back) when another
        transaction changed the status first.
        """
        updated = (
            db.query(ScheduledViewing)
            .filter(
                ScheduledViewing.id == viewing.id,
                ScheduledViewing.status.in_(tuple(expected_statuses)),
            )
            .update(updates, synchronize_session=False)
        )
        if not updated:
            db.rollback()
            return False

        db.commit()
        db.refresh(viewing)
        return True

    @staticmethod
    def search_viewings(
        db: Session,
        agent_id: str,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        property_id: Optional[str] = None,
    ) -> list[ScheduledViewing]:
        query = db.query(ScheduledViewing).filter(ScheduledViewing.agent_id == agent_id)

        if status:
            query = query.filter(ScheduledViewing.status == status)
        if property_id:
            query = query.filter(ScheduledViewing.property_id == property_id)
        if start_date:
            query = query.filter(ScheduledViewing.scheduled_time >= start_date)
        if end_date:
            query = query.filter(ScheduledViewing.scheduled_time <= end_date)

        return query.order_by(ScheduledViewing.scheduled_time.asc()).all()

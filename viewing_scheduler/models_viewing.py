"""
Viewing Scheduling Models
Agent availability windows and booked property viewings
"""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .config import DEFAULT_BUFFER_MINUTES, DEFAULT_TIMEZONE, DEFAULT_VIEWING_DURATION_MINUTES
from .database import Base
from .models import UTCDateTime, generate_public_id

# Status workflow: scheduled → confirmed → completed
# cancelled and completed are terminal
VIEWING_STATUSES = ("scheduled", "confirmed", "cancelled", "completed")
ACTIVE_STATUSES = ("scheduled", "confirmed")
TERMINAL_STATUSES = ("cancelled", "completed")


class AgentAvailability(Base):
    """Weekly recurring availability for one agent, replaced wholesale on every update"""

    __tablename__ = "agent_availability"

    agent_id = Column(String(36), ForeignKey("agents.id"), primary_key=True)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    viewing_duration_minutes = Column(
        Integer, nullable=False, default=DEFAULT_VIEWING_DURATION_MINUTES
    )
    buffer_minutes = Column(Integer, nullable=False, default=DEFAULT_BUFFER_MINUTES)

    # [{"dayOfWeek": 1, "startTime": "09:00", "endTime": "12:00"}, ...]
    # dayOfWeek: 0 = Sunday ... 6 = Saturday, times are wall-clock in `timezone`
    slots = Column(JSON, nullable=False, default=list)

    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    agent = relationship("Agent", back_populates="availability")


class ScheduledViewing(Base):
    """A booked property viewing"""

    __tablename__ = "scheduled_viewings"

    id = Column(String(36), primary_key=True, default=generate_public_id)

    # Relationships
    agent_id = Column(String(36), ForeignKey("agents.id"), nullable=False)
    property_id = Column(String(36), ForeignKey("properties.id"), nullable=False, index=True)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=False)

    # Customer
    customer_phone = Column(String(20), nullable=False)
    customer_name = Column(String(255), nullable=True)

    # Scheduling
    scheduled_time = Column(UTCDateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=DEFAULT_VIEWING_DURATION_MINUTES)
    status = Column(String(20), default="scheduled", nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Set once the long-lead reminder went out; reset on reschedule
    reminder_sent = Column(Boolean, default=False, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    agent = relationship("Agent")
    property = relationship("Property")
    conversation = relationship("Conversation")

    __table_args__ = (Index("idx_viewings_agent_time", "agent_id", "scheduled_time"),)

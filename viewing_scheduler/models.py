"""
Agent, property and conversation records.
These tables are owned by the surrounding CRM; the scheduler only reads the
columns declared here to verify ownership and to fill message templates.
"""

import uuid
from datetime import timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, TypeDecorator
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetime; naive values coming back from SQLite are read as UTC"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Agent(Base):
    __tablename__ = "agents"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(20), nullable=True)
    whatsapp_number = Column(String(20), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    properties = relationship("Property", back_populates="agent")
    availability = relationship("AgentAvailability", back_populates="agent", uselist=False)


class Property(Base):
    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    agent_id = Column(String(36), ForeignKey("agents.id"), nullable=False, index=True)
    project_name = Column(String(255), nullable=False)
    property_type = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False)
    district = Column(String(100), nullable=False)
    address = Column(String(500), nullable=True)

    agent = relationship("Agent", back_populates="properties")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    agent_id = Column(String(36), ForeignKey("agents.id"), nullable=False, index=True)
    customer_phone = Column(String(20), nullable=False, index=True)
    status = Column(String(50), default="active", nullable=False)  # active, closed
    last_activity_at = Column(DateTime, server_default=func.now())
